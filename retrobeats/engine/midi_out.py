"""RETRO BEATS MIDI-out engine — stream a LoadedSong to a mido output port.

Sound comes from whatever synth listens on the port (FluidSynth, a DAW,
hardware). The engine runs its own playback thread; the session only calls
the AudioEngine methods and never touches timing.

Muting a lane drops its note_on messages but still forwards controllers and
program changes, so an unmuted lane comes back with the right patch.
"""

from __future__ import annotations

import bisect
import threading
import time
from typing import Any, Callable

import mido
import structlog

from retrobeats.errors import EngineUnavailable
from retrobeats.song import LoadedSong, ScheduledEvent

logger = structlog.get_logger()

TICK_SECONDS = 0.002  # playback thread resolution


def _is_note_on(msg: mido.Message) -> bool:
    return msg.type == "note_on" and msg.velocity > 0


def _is_note_off(msg: mido.Message) -> bool:
    return msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0)


class MidoEngine:
    """Real-time MIDI playback with per-lane mute."""

    def __init__(
        self,
        *,
        port_name: str | None = None,
        output: Any | None = None,
        realtime: bool = True,
        tick_s: float = TICK_SECONDS,
    ) -> None:
        """
        Args:
            port_name: mido output port; None/empty uses the backend default.
            output: Anything with ``send(msg)``; replaces opening a port.
            realtime: Run the playback thread. Without it, call ``pump()``.
            tick_s: Playback thread sleep between dispatches.
        """
        self._owns_output = output is None
        if output is None:
            try:
                output = mido.open_output(port_name or None)
            except Exception as e:
                logger.error("engine.open_failed", port=port_name, error=str(e))
                raise EngineUnavailable(f"Could not open MIDI output: {e}") from e
        self._out = output
        self._realtime = realtime
        self._tick_s = tick_s

        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._thread: threading.Thread | None = None

        self._events: list[ScheduledEvent] = []
        self._times: list[float] = []
        self._index = 0
        self._duration = 0.0
        self._position = 0.0
        self._anchor: float | None = None  # monotonic time when playback (re)started
        self._playing = False
        self._muted: set[int] = set()
        self._sounding: dict[int, set[tuple[int, int]]] = {}

        logger.info("engine.opened", port=getattr(output, "name", port_name), realtime=realtime)

    # ── Loading ──────────────────────────────────────────

    def load(self, song: LoadedSong) -> None:
        """Replace the current schedule with a new song (stopped, at 0)."""
        with self._lock:
            self._silence_locked(None)
            self._events = list(song.events)
            self._times = [e.time for e in self._events]
            self._duration = song.duration
            self._index = 0
            self._position = 0.0
            self._anchor = None
            self._playing = False
            self._muted.clear()
        logger.info("engine.loaded", song=song.name, events=len(song.events))

    # ── Clock ────────────────────────────────────────────

    def _now_locked(self) -> float:
        if self._playing and self._anchor is not None:
            return min(self._duration, self._position + (time.monotonic() - self._anchor))
        return self._position

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._now_locked()

    @current_time.setter
    def current_time(self, value: float) -> None:
        with self._lock:
            self._silence_locked(None)
            self._position = min(max(0.0, float(value)), self._duration)
            self._index = bisect.bisect_left(self._times, self._position)
            if self._playing:
                self._anchor = time.monotonic()

    @property
    def is_playing(self) -> bool:
        with self._lock:
            return self._playing

    # ── Transport ────────────────────────────────────────

    def play(self) -> None:
        with self._lock:
            if self._playing or not self._events:
                return
            if self._position >= self._duration:
                self._position = 0.0
                self._index = 0
            self._anchor = time.monotonic()
            self._playing = True
        self._ensure_thread()

    def pause(self) -> None:
        with self._lock:
            self._position = self._now_locked()
            self._playing = False
            self._anchor = None
            self._silence_locked(None)

    def stop(self) -> None:
        with self._lock:
            self._playing = False
            self._anchor = None
            self._position = 0.0
            self._index = 0
            self._silence_locked(None)

    def close(self) -> None:
        self._closed.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        with self._lock:
            self._playing = False
            self._silence_locked(None)
        if self._owns_output:
            self._out.close()
        logger.info("engine.closed")

    # ── Mute ─────────────────────────────────────────────

    def mute_channel(self, channel: int, muted: bool) -> None:
        with self._lock:
            if muted:
                self._muted.add(channel)
                self._silence_locked(channel)
            else:
                self._muted.discard(channel)

    def is_channel_muted(self, channel: int) -> bool:
        with self._lock:
            return channel in self._muted

    # ── Dispatch ─────────────────────────────────────────

    def pump(self, until: float | None = None) -> int:
        """Send every event due up to ``until`` (default: now). Returns count sent."""
        with self._lock:
            position = self._now_locked() if until is None else until
            return self._advance_locked(position)

    def _advance_locked(self, position: float) -> int:
        sent = 0
        while self._index < len(self._events) and self._events[self._index].time <= position:
            event = self._events[self._index]
            self._index += 1
            msg = event.message
            if event.lane in self._muted and _is_note_on(msg):
                continue
            self._out.send(msg)
            sent += 1
            if not hasattr(msg, "channel"):
                continue
            sounding = self._sounding.setdefault(event.lane, set())
            if _is_note_on(msg):
                sounding.add((msg.channel, msg.note))
            elif _is_note_off(msg):
                sounding.discard((msg.channel, msg.note))

        if self._playing and position >= self._duration:
            self._playing = False
            self._anchor = None
            self._position = self._duration
            self._silence_locked(None)
            logger.info("engine.finished", duration=round(self._duration, 2))
        return sent

    def _silence_locked(self, lane: int | None) -> None:
        """note_off everything still sounding on one lane (or all lanes)."""
        lanes = list(self._sounding) if lane is None else [lane]
        for ln in lanes:
            for channel, note in sorted(self._sounding.pop(ln, set())):
                self._out.send(mido.Message("note_off", channel=channel, note=note, velocity=0))

    def _ensure_thread(self) -> None:
        if not self._realtime or self._closed.is_set():
            return
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="midi-out-playback", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._closed.is_set():
            with self._lock:
                if self._playing:
                    self._advance_locked(self._now_locked())
            self._closed.wait(self._tick_s)


def midi_out_factory(port_name: str | None = None) -> Callable[[LoadedSong], MidoEngine]:
    """Engine factory for PlaybackSession: a fresh port-backed engine per song."""

    def factory(song: LoadedSong) -> MidoEngine:
        engine = MidoEngine(port_name=port_name or None)
        engine.load(song)
        return engine

    return factory
