"""RETRO BEATS audio engine capability interface.

Required operations are on ``AudioEngine``; the per-channel mute query is
optional and lives on ``MuteQueryable`` so callers check for it explicitly
instead of probing attributes.

Every track↔channel translation goes through ``track_to_channel``. Track ids
and engine lanes both enumerate the song's playable tracks in file order, so
the mapping is the identity.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class AudioEngine(Protocol):
    """Playback engine owned by a PlaybackSession."""

    @property
    def duration(self) -> float: ...

    @property
    def current_time(self) -> float: ...

    @current_time.setter
    def current_time(self, value: float) -> None: ...

    @property
    def is_playing(self) -> bool: ...

    def mute_channel(self, channel: int, muted: bool) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class MuteQueryable(Protocol):
    """Optional capability: the engine can report a channel's mute flag."""

    def is_channel_muted(self, channel: int) -> bool: ...


def supports_mute_query(engine: object) -> bool:
    """True if the engine exposes an authoritative mute query."""
    return isinstance(engine, MuteQueryable)


def track_to_channel(track_id: int) -> int:
    """Engine channel for a track id."""
    return track_id
