"""TRACKS — priority classification and progressive reveal.

- Prioritizer: name → PriorityClass, opener selection, reveal order
- Sequencer: token-limited reveals, manual toggles, engine mute sync
"""

from retrobeats.tracks.prioritizer import (
    PriorityClass,
    Track,
    classify,
    initial_track_id,
    initialize,
    reveal_order,
)
from retrobeats.tracks.sequencer import (
    ActionResult,
    RevealSequencer,
    SequencerState,
)

__all__ = [
    "PriorityClass",
    "Track",
    "classify",
    "initial_track_id",
    "initialize",
    "reveal_order",
    "ActionResult",
    "RevealSequencer",
    "SequencerState",
]
