"""RETRO BEATS Song Source — parse MIDI files into a playable schedule.

Uses mido for MIDI I/O. Parsing runs on a background thread; until it is
done ``MidiSongSource.duration`` reports ``DURATION_UNKNOWN``, and callers
poll ``wait_until_ready`` with a bounded number of attempts.

Only *playable* tracks (those with at least one channel or sysex message)
become lanes, so a conductor track holding only tempo and names never shows
up as a silent, revealable track. Lane i is the i-th playable track in file
order; track ids use the same numbering.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import mido
import structlog

from retrobeats.errors import LoadTimeout, SongLoadError

logger = structlog.get_logger()

DURATION_UNKNOWN = 99999.0  # placeholder duration while the file is loading
DEFAULT_TEMPO = 500000  # 120 BPM


# ── Data Types ───────────────────────────────────────────


@dataclass(frozen=True)
class ScheduledEvent:
    """A MIDI message at an absolute time, tagged with its lane."""

    time: float  # seconds from song start
    lane: int
    message: mido.Message


@dataclass
class LoadedSong:
    """A parsed MIDI file ready for an engine."""

    name: str  # file base name, e.g. "smb3_overworld.mid"
    path: Path
    track_names: list[str | None] = field(default_factory=list)
    events: list[ScheduledEvent] = field(default_factory=list)
    duration: float = 0.0
    file_tracks: list[int] = field(default_factory=list)  # lane → file track index

    @property
    def track_count(self) -> int:
        return len(self.track_names)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tracks": self.track_count,
            "events": len(self.events),
            "duration": round(self.duration, 3),
        }


# ── Parsing ──────────────────────────────────────────────


def is_playable(track: mido.MidiTrack) -> bool:
    """True if the track carries anything an output port would receive."""
    return any(not msg.is_meta for msg in track)


def track_display_name(track: mido.MidiTrack) -> str | None:
    """First track_name meta message, or None."""
    for msg in track:
        if msg.type == "track_name":
            return msg.name
    return None


def build_schedule(
    midi: mido.MidiFile,
    file_tracks: list[int],
    *,
    skip_to_first_note_on: bool = True,
) -> tuple[list[ScheduledEvent], float]:
    """Merge all tracks into one tempo-aware, absolute-seconds timeline.

    Returns (events, duration). With ``skip_to_first_note_on`` the whole
    timeline is shifted so the first sounding note plays at t=0; anything
    before it (program changes, controllers) is sent at t=0.
    """
    lane_of = {file_index: lane for lane, file_index in enumerate(file_tracks)}

    timeline: list[tuple[int, int, int, mido.Message]] = []
    for track_index, track in enumerate(midi.tracks):
        tick = 0
        for seq, msg in enumerate(track):
            tick += msg.time
            timeline.append((tick, track_index, seq, msg))
    timeline.sort(key=lambda e: (e[0], e[1], e[2]))

    events: list[ScheduledEvent] = []
    tempo = DEFAULT_TEMPO
    seconds = 0.0
    last_tick = 0
    for tick, track_index, _seq, msg in timeline:
        seconds += mido.tick2second(tick - last_tick, midi.ticks_per_beat, tempo)
        last_tick = tick
        if msg.type == "set_tempo":
            tempo = msg.tempo
            continue
        if msg.is_meta:
            continue
        lane = lane_of.get(track_index)
        if lane is None:
            continue
        events.append(ScheduledEvent(time=seconds, lane=lane, message=msg.copy(time=0)))

    end = seconds
    if skip_to_first_note_on:
        first_note = next(
            (e.time for e in events if e.message.type == "note_on" and e.message.velocity > 0),
            0.0,
        )
        if first_note > 0:
            events = [
                ScheduledEvent(time=max(0.0, e.time - first_note), lane=e.lane, message=e.message)
                for e in events
            ]
            end = max(0.0, end - first_note)

    return events, end


def parse_song(path: str | Path, *, skip_to_first_note_on: bool = True) -> LoadedSong:
    """Read a .mid/.midi file into a LoadedSong."""
    path = Path(path)
    try:
        midi = mido.MidiFile(str(path))
    except (OSError, EOFError, ValueError, KeyError) as e:
        raise SongLoadError(f"Could not read MIDI file '{path.name}': {e}") from e

    if midi.type == 2:
        raise SongLoadError(f"'{path.name}' is an asynchronous (type 2) MIDI file")

    file_tracks = [i for i, track in enumerate(midi.tracks) if is_playable(track)]
    events, duration = build_schedule(
        midi, file_tracks, skip_to_first_note_on=skip_to_first_note_on,
    )
    song = LoadedSong(
        name=path.name,
        path=path,
        track_names=[track_display_name(midi.tracks[i]) for i in file_tracks],
        events=events,
        duration=duration,
        file_tracks=file_tracks,
    )
    logger.info(
        "song.parsed",
        song=path.name,
        midi_type=midi.type,
        file_tracks=len(midi.tracks),
        playable=len(file_tracks),
        duration=round(duration, 2),
    )
    return song


# ── Background Source ────────────────────────────────────


class MidiSongSource:
    """Parses a song off the event loop and reports readiness by polling."""

    def __init__(self, path: str | Path, *, skip_to_first_note_on: bool = True) -> None:
        self.path = Path(path)
        self._skip = skip_to_first_note_on
        self._song: LoadedSong | None = None
        self._error: Exception | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Begin parsing (idempotent)."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._parse, name=f"midi-parse-{self.path.name}", daemon=True,
        )
        self._thread.start()

    def _parse(self) -> None:
        try:
            self._song = parse_song(self.path, skip_to_first_note_on=self._skip)
        except Exception as e:
            # Surfaced to the caller by wait_until_ready
            logger.error("song.parse_failed", song=self.path.name, error=str(e))
            self._error = e

    @property
    def song(self) -> LoadedSong | None:
        return self._song

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def duration(self) -> float:
        return self._song.duration if self._song is not None else DURATION_UNKNOWN

    @property
    def track_count(self) -> int:
        return self._song.track_count if self._song is not None else 0

    def track_name(self, index: int) -> str | None:
        if self._song is None or not 0 <= index < self._song.track_count:
            return None
        return self._song.track_names[index]


async def wait_until_ready(
    source: MidiSongSource,
    *,
    attempts: int = 50,
    interval_s: float = 0.1,
) -> LoadedSong:
    """Poll until the source has a real duration.

    Raises:
        SongLoadError: parsing failed.
        LoadTimeout: still not ready after ``attempts`` polls.
    """
    for attempt in range(attempts + 1):
        if source.error is not None:
            if isinstance(source.error, SongLoadError):
                raise source.error
            raise SongLoadError(f"Failed to load '{source.path.name}': {source.error}") from source.error
        if source.duration != DURATION_UNKNOWN and source.song is not None:
            logger.info("song.ready", song=source.path.name, attempts=attempt)
            return source.song
        if attempt < attempts:
            await asyncio.sleep(interval_s)

    logger.error("song.load_timeout", song=source.path.name, attempts=attempts)
    raise LoadTimeout(source.path.name, attempts)
