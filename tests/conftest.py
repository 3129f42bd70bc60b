"""Shared fakes and MIDI fixtures for RETRO BEATS tests."""

from __future__ import annotations

from pathlib import Path

import mido
import pytest

from retrobeats.config import Settings


# ── Fake engines ─────────────────────────────────────────


class FakeEngine:
    """In-memory AudioEngine without a mute query."""

    def __init__(self, duration: float = 30.0) -> None:
        self.duration = duration
        self.muted: dict[int, bool] = {}
        self.calls: list[tuple] = []
        self.closed = False
        self._time = 0.0
        self._playing = False

    @property
    def current_time(self) -> float:
        return self._time

    @current_time.setter
    def current_time(self, value: float) -> None:
        self.calls.append(("seek", value))
        self._time = value

    @property
    def is_playing(self) -> bool:
        return self._playing

    def mute_channel(self, channel: int, muted: bool) -> None:
        self.calls.append(("mute", channel, muted))
        self.muted[channel] = muted

    def play(self) -> None:
        self.calls.append(("play",))
        self._playing = True

    def pause(self) -> None:
        self.calls.append(("pause",))
        self._playing = False

    def stop(self) -> None:
        self.calls.append(("stop",))
        self._playing = False
        self._time = 0.0

    def close(self) -> None:
        self.calls.append(("close",))
        self.closed = True


class QueryableEngine(FakeEngine):
    """FakeEngine that also answers is_channel_muted (supports drift tests)."""

    def is_channel_muted(self, channel: int) -> bool:
        return self.muted.get(channel, False)

    def drift(self, channel: int, muted: bool) -> None:
        """Change engine state behind the sequencer's back."""
        self.muted[channel] = muted


class FakePort:
    """Stands in for a mido output port."""

    name = "fake-port"

    def __init__(self) -> None:
        self.sent: list[mido.Message] = []
        self.closed = False

    def send(self, msg: mido.Message) -> None:
        self.sent.append(msg)

    def close(self) -> None:
        self.closed = True


# ── MIDI fixtures ────────────────────────────────────────


def write_midi(
    path: Path,
    names: list[str | None],
    *,
    bpm: float = 120.0,
    conductor: bool = True,
) -> Path:
    """Write a type-1 file: optional conductor + one short note per named track.

    Track i plays note 60 on channel i, starting one beat in and lasting
    one beat.
    """
    mid = mido.MidiFile(type=1, ticks_per_beat=480)
    if conductor:
        meta = mido.MidiTrack()
        meta.append(mido.MetaMessage("track_name", name="Conductor", time=0))
        meta.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm), time=0))
        mid.tracks.append(meta)

    for channel, name in enumerate(names):
        track = mido.MidiTrack()
        if name is not None:
            track.append(mido.MetaMessage("track_name", name=name, time=0))
        track.append(mido.Message("program_change", channel=channel, program=channel, time=0))
        track.append(mido.Message("note_on", channel=channel, note=60, velocity=90, time=480))
        track.append(mido.Message("note_off", channel=channel, note=60, velocity=0, time=480))
        mid.tracks.append(track)

    mid.save(str(path))
    return path


SONG_TRACKS = ["Lead Synth", "Bass", "Percussion", None]


@pytest.fixture
def song_path(tmp_path: Path) -> Path:
    """Four-track song named after a well-known game."""
    return write_midi(tmp_path / "super_mario_bros_3.mid", SONG_TRACKS)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with short timers so session tests run quickly."""
    return Settings(
        reveal_tokens=3,
        load_poll_interval_s=0.01,
        load_max_attempts=200,
        position_poll_interval_s=0.01,
        consistency_interval_s=0.05,
    )
