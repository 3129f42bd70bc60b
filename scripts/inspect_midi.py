#!/usr/bin/env python3
"""Show how a MIDI file will be played: tracks, priority classes, reveal order."""

import sys
from pathlib import Path

from retrobeats.guess.matcher import normalize_target
from retrobeats.song import parse_song
from retrobeats.tracks.prioritizer import classify, initialize, reveal_order

if len(sys.argv) < 2:
    print("usage: inspect_midi.py FILE.mid [FILE.mid ...]")
    sys.exit(1)

for arg in sys.argv[1:]:
    song = parse_song(Path(arg))
    tracks = initialize([classify(i, name) for i, name in enumerate(song.track_names)])
    print(f"{song.name}  (target: '{normalize_target(song.name)}')")
    print(f"  Duration: {song.duration:.1f}s  Lanes: {song.track_count}  Events: {len(song.events)}")
    for t in tracks:
        state = "ON " if not t.is_muted else "   "
        print(f"  [{state}] {t.id:>2}  {t.priority_class.name:<10} {t.name}")
    print(f"  Reveal order: {reveal_order(tracks)}")
