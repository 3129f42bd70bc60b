#!/usr/bin/env python3
"""Try a guess against a file name and print every candidate's score."""

import sys

from retrobeats.config import settings
from retrobeats.guess.matcher import check_guess, normalize_target, score
from retrobeats.guess.variations import expand

if len(sys.argv) != 3:
    print('usage: guess.py "GUESS" FILENAME.mid')
    sys.exit(1)

guess, filename = sys.argv[1], sys.argv[2]
target = normalize_target(filename)

print(f"Target: '{target}'")
for candidate in sorted(expand(guess)):
    s = score(
        target,
        candidate,
        distance=settings.match_distance,
        ignore_location=settings.match_ignore_location,
    )
    print(f"  {s:.3f}  {candidate}")

result = check_guess(guess, filename, threshold=settings.match_threshold)
print(f"\nRESULT: {'MATCH' if result.matched else 'no match'} (best={result.candidate!r}, score={result.score})")
