"""ENGINE — playback engines and the capability interface they satisfy."""

from retrobeats.engine.base import (
    AudioEngine,
    MuteQueryable,
    supports_mute_query,
    track_to_channel,
)

__all__ = [
    "AudioEngine",
    "MuteQueryable",
    "supports_mute_query",
    "track_to_channel",
]
