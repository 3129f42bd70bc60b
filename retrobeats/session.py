"""RETRO BEATS Playback Session — one player, one song at a time.

The session owns the engine and the reveal sequencer for the current song.
Loading a new song tears both down (timers first) before anything new is
built, and a newer load cancels any load still in flight.

Two timers run while a song is loaded:
  - consistency check every ``consistency_interval_s`` (5 s)
  - position poll every ``position_poll_interval_s`` (100 ms), which also
    feeds any registered listeners (the WebSocket broadcaster)
"""

from __future__ import annotations

import asyncio
import random
from pathlib import Path
from typing import Any, Awaitable, Callable

import structlog

from retrobeats.config import Settings, settings
from retrobeats.engine.base import AudioEngine
from retrobeats.errors import EngineUnavailable, LoadSuperseded, RetroBeatsError
from retrobeats.guess.matcher import GuessResult, check_guess
from retrobeats.library import list_midi_files, pick_random_song
from retrobeats.song import LoadedSong, MidiSongSource, wait_until_ready
from retrobeats.tracks.prioritizer import Track, classify
from retrobeats.tracks.sequencer import NO_SONG, ActionResult, RevealSequencer

logger = structlog.get_logger()

EngineFactory = Callable[[LoadedSong], AudioEngine]
Listener = Callable[[dict[str, Any]], Awaitable[None]]


class PlaybackSession:
    """Orchestrates loading, playback controls, reveals and guesses."""

    def __init__(
        self,
        engine_factory: EngineFactory,
        *,
        cfg: Settings | None = None,
        library_dir: str | Path | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._engine_factory = engine_factory
        self._cfg = cfg or settings
        self.library_dir = Path(library_dir) if library_dir is not None else Path(self._cfg.midi_dir)
        self._rng = rng

        self._engine: AudioEngine | None = None
        self._song: LoadedSong | None = None
        self._sequencer: RevealSequencer | None = None
        self._timers: list[asyncio.Task[None]] = []
        self._load_task: asyncio.Task[list[Track]] | None = None
        self._listeners: list[Listener] = []
        self._last_position: tuple[float, bool] | None = None

        self.current_time = 0.0
        self.is_playing = False
        self.loading = False
        self.error: str | None = None
        self.solved = False
        self.guesses: list[str] = []

    # ── Accessors ────────────────────────────────────────

    @property
    def song(self) -> LoadedSong | None:
        return self._song

    @property
    def sequencer(self) -> RevealSequencer | None:
        return self._sequencer

    @property
    def engine(self) -> AudioEngine | None:
        return self._engine

    @property
    def timers_running(self) -> bool:
        return any(not t.done() for t in self._timers)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ── Loading ──────────────────────────────────────────

    async def load_song(self, path: str | Path) -> list[Track]:
        """Load a song, replacing whatever is loaded or loading.

        Raises:
            LoadSuperseded: a newer load_song() cancelled this one.
            LoadTimeout, SongLoadError, EngineUnavailable: load failed; the
                session stays usable.
        """
        path = Path(path)
        previous = self._load_task
        if previous is not None and not previous.done():
            logger.info("session.load_superseding", song=path.name)
            previous.cancel()

        task = asyncio.create_task(self._load(path))
        self._load_task = task
        try:
            return await task
        except asyncio.CancelledError:
            me = asyncio.current_task()
            if self._load_task is not task and not (me is not None and me.cancelling()):
                raise LoadSuperseded(f"Load of '{path.name}' was superseded") from None
            raise

    async def load_random_song(self) -> list[Track]:
        """Pick a random song from the library and load it."""
        name = pick_random_song(list_midi_files(self.library_dir), self._rng)
        return await self.load_song(self.library_dir / name)

    async def _load(self, path: Path) -> list[Track]:
        self.loading = True
        self.error = None
        try:
            await self._teardown()
            logger.info("session.load_start", song=path.name)

            source = MidiSongSource(path, skip_to_first_note_on=self._cfg.skip_to_first_note_on)
            source.start()
            song = await wait_until_ready(
                source,
                attempts=self._cfg.load_max_attempts,
                interval_s=self._cfg.load_poll_interval_s,
            )

            # Nothing below awaits, so a superseding load can't interleave.
            engine = self._create_engine(song)
            tracks = [classify(i, source.track_name(i)) for i in range(source.track_count)]
            sequencer = RevealSequencer(tracks, engine, tokens=self._cfg.reveal_tokens)
            sequencer.apply_all()
            sequencer.verify_consistency()

            self._engine = engine
            self._song = song
            self._sequencer = sequencer
            self._start_timers()

            logger.info(
                "session.load_complete",
                song=song.name,
                tracks=len(tracks),
                duration=round(song.duration, 2),
                opener=next((t.name for t in sequencer.tracks if not t.is_muted), None),
            )
            return sequencer.tracks
        except RetroBeatsError as e:
            self.error = str(e)
            logger.error("session.load_failed", song=path.name, error=str(e))
            raise
        finally:
            if self._load_task is asyncio.current_task():
                self.loading = False

    def _create_engine(self, song: LoadedSong) -> AudioEngine:
        try:
            return self._engine_factory(song)
        except EngineUnavailable:
            raise
        except Exception as e:
            raise EngineUnavailable(f"Audio engine failed to start: {e}") from e

    async def _teardown(self) -> None:
        await self._cancel_timers()
        engine, self._engine = self._engine, None
        if engine is not None:
            engine.stop()
            engine.close()
        self._sequencer = None
        self._song = None
        self._last_position = None
        self.current_time = 0.0
        self.is_playing = False
        self.solved = False
        self.guesses = []

    async def close(self) -> None:
        """End the session: cancel loads and timers, release the engine."""
        task, self._load_task = self._load_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self._teardown()
        self.loading = False
        logger.info("session.closed")

    # ── Timers ───────────────────────────────────────────

    def _start_timers(self) -> None:
        self._timers = [
            asyncio.create_task(
                self._every(self._cfg.consistency_interval_s, self._consistency_tick),
                name="retrobeats-consistency",
            ),
            asyncio.create_task(
                self._every(self._cfg.position_poll_interval_s, self._position_tick),
                name="retrobeats-position",
            ),
        ]

    async def _cancel_timers(self) -> None:
        timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

    async def _every(self, interval_s: float, tick: Callable[[], Awaitable[None]]) -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                await tick()
            except Exception as e:
                logger.error("session.timer_failed", tick=tick.__name__, error=str(e))

    async def _consistency_tick(self) -> None:
        if self._sequencer is not None:
            corrected = self._sequencer.verify_consistency()
            if corrected:
                logger.info("session.consistency_repaired", tracks=corrected)

    async def _position_tick(self) -> None:
        if self._engine is None:
            return
        self.current_time = self._engine.current_time
        self.is_playing = self._engine.is_playing

        position = (round(self.current_time, 1), self.is_playing)
        if position == self._last_position:
            return
        self._last_position = position
        payload = {"type": "position", **self.snapshot()}
        for listener in list(self._listeners):
            await listener(payload)

    # ── Playback controls ────────────────────────────────

    def play(self) -> bool:
        if self._engine is None:
            return False
        self._engine.play()
        self.is_playing = self._engine.is_playing
        logger.info("session.play", at=round(self._engine.current_time, 2))
        return True

    def pause(self) -> bool:
        if self._engine is None:
            return False
        self._engine.pause()
        self.is_playing = False
        logger.info("session.pause", at=round(self._engine.current_time, 2))
        return True

    def toggle_play(self) -> bool:
        if self._engine is None:
            return False
        return self.pause() if self._engine.is_playing else self.play()

    def restart(self) -> bool:
        """Rewind to 0, return to the single-opener mix, and play."""
        if self._sequencer is None or self._engine is None:
            return False
        self._sequencer.reset_to_initial()
        self.current_time = 0.0
        self.is_playing = self._engine.is_playing
        return True

    # ── Game actions ─────────────────────────────────────

    def reveal_more(self) -> ActionResult:
        if self._sequencer is None:
            return ActionResult("reveal", False, reason=NO_SONG)
        return self._sequencer.reveal_next()

    def toggle_track(self, track_id: int) -> ActionResult:
        if self._sequencer is None:
            return ActionResult("toggle", False, track_id, NO_SONG)
        return self._sequencer.toggle_mute(track_id)

    def mute_all(self) -> ActionResult:
        if self._sequencer is None:
            return ActionResult("mute_all", False, reason=NO_SONG)
        return self._sequencer.set_all_muted(True)

    def submit_guess(self, guess: str) -> GuessResult:
        """Check a guess against the loaded file name.

        The first correct guess unmutes every track.
        """
        if self._song is None:
            return GuessResult(matched=False, score=None)

        result = check_guess(
            guess,
            self._song.name,
            threshold=self._cfg.match_threshold,
            distance=self._cfg.match_distance,
            ignore_location=self._cfg.match_ignore_location,
        )
        self.guesses.append(guess)
        logger.info(
            "session.guess",
            guess=guess,
            matched=result.matched,
            score=result.score,
            attempt=len(self.guesses),
        )
        if result.matched and not self.solved:
            self.solved = True
            if self._sequencer is not None:
                self._sequencer.set_all_muted(False)
            logger.info("session.solved", song=self._song.name, attempts=len(self.guesses))
        return result

    # ── State ────────────────────────────────────────────

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready view; the song name stays hidden until solved."""
        state: dict[str, Any] = {
            "loaded": self._song is not None,
            "loading": self.loading,
            "error": self.error,
            "is_playing": self.is_playing,
            "current_time": round(self.current_time, 2),
            "duration": round(self._engine.duration, 2) if self._engine is not None else 0.0,
            "solved": self.solved,
            "guesses": len(self.guesses),
            "song": self._song.name if (self._song is not None and self.solved) else None,
        }
        if self._sequencer is not None:
            state.update(self._sequencer.snapshot())
        else:
            state.update({"state": None, "tokens": 0, "revealed_count": 0, "tracks": []})
        return state
