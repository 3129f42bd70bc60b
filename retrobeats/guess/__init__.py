"""GUESS — the guess-the-game mini-game.

- Variations: one free-text guess → many candidate spellings
- Matcher: best candidate vs. the loaded file name (rapidfuzz)
"""

from retrobeats.guess.matcher import (
    GuessResult,
    check_guess,
    is_match,
    normalize_target,
)
from retrobeats.guess.variations import expand

__all__ = [
    "GuessResult",
    "check_guess",
    "is_match",
    "normalize_target",
    "expand",
]
