"""RETRO BEATS Reveal Sequencer — mute bookkeeping for one loaded song.

States:
  INITIALIZED    only the opener is audible (fresh load or after reset)
  USER_MODIFIED  after any reveal, toggle or bulk mute

The sequencer is the source of truth for mute flags. Every change is pushed
to the engine through ``track_to_channel``; ``verify_consistency`` re-applies
recorded flags if the engine has drifted.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Literal, Sequence

import structlog

from retrobeats.engine.base import AudioEngine, supports_mute_query, track_to_channel
from retrobeats.tracks.prioritizer import Track, initialize

logger = structlog.get_logger()

ActionName = Literal["reveal", "toggle", "mute_all", "unmute_all"]

# Disallowed-action reasons
NO_TOKENS = "no_tokens"
FULLY_REVEALED = "fully_revealed"
UNKNOWN_TRACK = "unknown_track"
NO_SONG = "no_song"


class SequencerState(Enum):
    INITIALIZED = "initialized"
    USER_MODIFIED = "user_modified"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a user action. Disallowed actions are reported, not raised."""

    action: ActionName
    allowed: bool
    track_id: int | None = None
    reason: str | None = None
    tokens: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "allowed": self.allowed,
            "track_id": self.track_id,
            "reason": self.reason,
            "tokens": self.tokens,
        }


class RevealSequencer:
    """Decides which tracks are audible and keeps the engine in step."""

    def __init__(self, tracks: Sequence[Track], engine: AudioEngine, tokens: int = 3) -> None:
        self._engine = engine
        self._tracks: list[Track] = initialize(tracks)
        self._tokens = max(0, tokens)
        self._revealed = 1 if self._tracks else 0
        self.state = SequencerState.INITIALIZED

    # ── Read-only views ──────────────────────────────────

    @property
    def tracks(self) -> list[Track]:
        """Copies; edit mute state through the action methods."""
        return [replace(t) for t in self._tracks]

    @property
    def tokens(self) -> int:
        return self._tokens

    @property
    def revealed_count(self) -> int:
        return self._revealed

    def find(self, track_id: int) -> Track | None:
        for track in self._tracks:
            if track.id == track_id:
                return track
        return None

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "tokens": self._tokens,
            "revealed_count": self._revealed,
            "tracks": [t.to_dict() for t in self._tracks],
        }

    # ── Engine sync ──────────────────────────────────────

    def _apply(self, track: Track) -> None:
        self._engine.mute_channel(track_to_channel(track.id), track.is_muted)

    def apply_all(self) -> None:
        """Push every recorded mute flag to the engine."""
        for track in self._tracks:
            self._apply(track)

    def verify_consistency(self) -> list[int]:
        """Re-apply recorded flags wherever the engine disagrees.

        Returns the ids that had to be corrected. Engines without a mute
        query are trusted as-is.
        """
        if not supports_mute_query(self._engine):
            return []

        corrected: list[int] = []
        for track in self._tracks:
            actual = self._engine.is_channel_muted(track_to_channel(track.id))  # type: ignore[attr-defined]
            if actual != track.is_muted:
                logger.warning(
                    "sequencer.consistency_mismatch",
                    track_id=track.id,
                    recorded=track.is_muted,
                    engine=actual,
                )
                self._apply(track)
                corrected.append(track.id)
        return corrected

    # ── Actions ──────────────────────────────────────────

    def toggle_mute(self, track_id: int) -> ActionResult:
        """Flip one track's mute flag (manual override until next reset)."""
        track = self.find(track_id)
        if track is None:
            logger.warning("sequencer.toggle_unknown_track", track_id=track_id)
            return ActionResult("toggle", False, track_id, UNKNOWN_TRACK, self._tokens)

        track.is_muted = not track.is_muted
        self._apply(track)
        self.state = SequencerState.USER_MODIFIED
        logger.info("sequencer.toggle", track_id=track_id, muted=track.is_muted)
        return ActionResult("toggle", True, track_id, tokens=self._tokens)

    def reveal_next(self) -> ActionResult:
        """Spend a token to unmute the highest-priority muted track.

        A token is only spent when something is actually revealed.
        """
        if self._tokens <= 0:
            logger.info("sequencer.reveal_disallowed", reason=NO_TOKENS)
            return ActionResult("reveal", False, reason=NO_TOKENS, tokens=0)

        muted = [t for t in self._tracks if t.is_muted]
        if not muted:
            logger.info("sequencer.reveal_disallowed", reason=FULLY_REVEALED)
            return ActionResult("reveal", False, reason=FULLY_REVEALED, tokens=self._tokens)

        track = min(muted, key=lambda t: t.sort_key)
        track.is_muted = False
        self._apply(track)
        self._tokens -= 1
        self._revealed += 1
        self.state = SequencerState.USER_MODIFIED
        logger.info(
            "sequencer.reveal",
            track_id=track.id,
            name=track.name,
            priority=track.priority_class.name,
            tokens_left=self._tokens,
        )
        return ActionResult("reveal", True, track.id, tokens=self._tokens)

    def set_all_muted(self, muted: bool) -> ActionResult:
        """Bulk mute (or unmute) every track."""
        for track in self._tracks:
            track.is_muted = muted
        self.apply_all()
        self._revealed = 0 if muted else len(self._tracks)
        self.state = SequencerState.USER_MODIFIED
        action: ActionName = "mute_all" if muted else "unmute_all"
        logger.info("sequencer.bulk", action=action, tracks=len(self._tracks))
        return ActionResult(action, True, tokens=self._tokens)

    def reset_to_initial(self) -> None:
        """Rewind playback and return to the single-opener state.

        Tokens already spent stay spent.
        """
        self._engine.stop()
        self._engine.current_time = 0.0
        self._tracks = initialize(self._tracks)
        self._revealed = 1 if self._tracks else 0
        self.apply_all()
        self._engine.play()
        self.state = SequencerState.INITIALIZED
        logger.info("sequencer.reset", tracks=len(self._tracks), tokens=self._tokens)
