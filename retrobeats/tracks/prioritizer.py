"""RETRO BEATS Track Prioritizer — classify tracks and pick the opening voice.

Each track gets a coarse priority class from its name. The lowest class is
the one heard first; the rest are revealed in ascending (priority, id) order:

  PERCUSSION (0) → BASS (1) → OTHER (2) → GUITAR (3) → LEAD (4)
  → VOICE (5) → MELODY (6)

The name scan uses a different order (percussion, bass, guitar, lead, voice,
melody); the first keyword found wins.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Sequence


class PriorityClass(IntEnum):
    """Reveal priority; lower plays earlier."""

    PERCUSSION = 0
    BASS = 1
    OTHER = 2
    GUITAR = 3
    LEAD = 4
    VOICE = 5
    MELODY = 6


# Scan order for name keywords (first match wins)
KEYWORD_PRECEDENCE: list[tuple[str, PriorityClass]] = [
    ("percussion", PriorityClass.PERCUSSION),
    ("bass", PriorityClass.BASS),
    ("guitar", PriorityClass.GUITAR),
    ("lead", PriorityClass.LEAD),
    ("voice", PriorityClass.VOICE),
    ("melody", PriorityClass.MELODY),
]


# ── Data Types ───────────────────────────────────────────


@dataclass
class Track:
    """One addressable instrument part of a loaded song."""

    id: int  # stable 0-based index, also the engine lane
    name: str
    is_muted: bool
    priority_class: PriorityClass

    @property
    def sort_key(self) -> tuple[int, int]:
        return (int(self.priority_class), self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_muted": self.is_muted,
            "priority_class": self.priority_class.name.lower(),
            "priority": int(self.priority_class),
        }


# ── Classification ───────────────────────────────────────


def priority_for_name(name: str) -> PriorityClass:
    """Scan a track name for instrument keywords."""
    lowered = name.lower()
    for keyword, priority in KEYWORD_PRECEDENCE:
        if keyword in lowered:
            return priority
    return PriorityClass.OTHER


def classify(track_index: int, raw_name: str | None) -> Track:
    """Build a Track from its index and optional display name.

    Missing or blank names fall back to ``"Track {index}"``.
    """
    name = (raw_name or "").strip() or f"Track {track_index}"
    return Track(
        id=track_index,
        name=name,
        is_muted=False,
        priority_class=priority_for_name(name),
    )


# ── Initial State ────────────────────────────────────────


def initial_track_id(tracks: Sequence[Track]) -> int | None:
    """Id of the track that plays alone at the start, or None if empty."""
    if not tracks:
        return None
    return min(tracks, key=lambda t: t.sort_key).id


def initialize(tracks: Sequence[Track]) -> list[Track]:
    """Mute everything except the single highest-priority track."""
    opener = initial_track_id(tracks)
    return [replace(t, is_muted=t.id != opener) for t in tracks]


def reveal_order(tracks: Sequence[Track]) -> list[int]:
    """All track ids in the order they would be revealed."""
    return [t.id for t in sorted(tracks, key=lambda t: t.sort_key)]
