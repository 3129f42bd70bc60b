"""RETRO BEATS Fuzzy Matcher — does a guess match the loaded file's name?

Scores are distances: 0.0 is a perfect match, 1.0 means nothing in common.
A candidate is compared against its best-aligned window of the target
(rapidfuzz ``partial_ratio``), so "mario" scores 0.0 against
"supermariobros3" wherever in the name it appears.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Iterable

from rapidfuzz import fuzz

from retrobeats.guess.variations import expand

MIDI_EXTENSIONS = (".midi", ".mid")

DEFAULT_THRESHOLD = 0.8
DEFAULT_DISTANCE = 100


@dataclass(frozen=True)
class GuessResult:
    """Outcome of one guess submission."""

    matched: bool
    score: float | None  # best (lowest) score, None if nothing was scoreable
    candidate: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "matched": self.matched,
            "score": round(self.score, 4) if self.score is not None else None,
            "candidate": self.candidate,
        }


def normalize_target(filename: str) -> str:
    """Base name, without .mid/.midi, lower-cased."""
    name = PurePath(filename).name
    lowered = name.lower()
    for ext in MIDI_EXTENSIONS:
        if lowered.endswith(ext):
            name = name[: -len(ext)]
            break
    return name.lower()


def score(
    target: str,
    candidate: str,
    *,
    distance: int = DEFAULT_DISTANCE,
    ignore_location: bool = True,
) -> float:
    """Distance between a candidate and its best window in the target.

    With ``ignore_location=False`` a match further into the target costs
    ``offset / distance`` extra.
    """
    alignment = fuzz.partial_ratio_alignment(candidate, target)
    if alignment is None:
        return 1.0

    value = 1.0 - alignment.score / 100.0
    if not ignore_location and distance > 0:
        value += alignment.dest_start / distance
    return min(1.0, max(0.0, value))


def is_match(
    target_name: str,
    candidates: Iterable[str],
    *,
    threshold: float = DEFAULT_THRESHOLD,
    distance: int = DEFAULT_DISTANCE,
    ignore_location: bool = True,
) -> GuessResult:
    """Best candidate wins; it matches if its score is below ``threshold``."""
    best: tuple[float, str] | None = None
    for candidate in sorted(set(candidates)):
        if not candidate or not target_name:
            continue
        s = score(target_name, candidate, distance=distance, ignore_location=ignore_location)
        if best is None or s < best[0]:
            best = (s, candidate)

    if best is None:
        return GuessResult(matched=False, score=None)
    return GuessResult(matched=best[0] < threshold, score=best[0], candidate=best[1])


def check_guess(
    guess: str,
    filename: str,
    *,
    threshold: float = DEFAULT_THRESHOLD,
    distance: int = DEFAULT_DISTANCE,
    ignore_location: bool = True,
) -> GuessResult:
    """Expand a raw guess and match it against a MIDI file name."""
    return is_match(
        normalize_target(filename),
        expand(guess),
        threshold=threshold,
        distance=distance,
        ignore_location=ignore_location,
    )
