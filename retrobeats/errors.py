"""RETRO BEATS error taxonomy.

Every error here is recoverable at the session level: a failed load leaves
the session usable and another load may be attempted. Disallowed user
actions (reveal without tokens, toggling an unknown track) are not errors;
they come back as ``ActionResult(allowed=False)``.
"""

from __future__ import annotations


class RetroBeatsError(Exception):
    """Base class for all RETRO BEATS errors."""


class LoadTimeout(RetroBeatsError):
    """Song metadata never became available within the polling window."""

    def __init__(self, song: str, attempts: int) -> None:
        super().__init__(f"Timed out loading '{song}' after {attempts} attempts")
        self.song = song
        self.attempts = attempts


class SongLoadError(RetroBeatsError):
    """The song file could not be read or parsed."""


class LoadSuperseded(RetroBeatsError):
    """A newer load started before this one finished."""


class NoSongsAvailable(RetroBeatsError):
    """The song library is empty."""


class EngineUnavailable(RetroBeatsError):
    """The audio engine failed to initialize; playback is disabled."""
