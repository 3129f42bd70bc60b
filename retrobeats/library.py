"""RETRO BEATS Song Library — list and pick MIDI files from a directory."""

from __future__ import annotations

import random
from pathlib import Path
from typing import Sequence

import structlog

from retrobeats.errors import NoSongsAvailable

logger = structlog.get_logger()

MIDI_SUFFIXES = (".mid", ".midi")


def list_midi_files(directory: str | Path) -> list[str]:
    """File names of every .mid/.midi file in ``directory``.

    A missing directory is an empty library, not an error. Other read
    failures (permissions, not a directory) propagate as OSError.
    """
    directory = Path(directory)
    if not directory.exists():
        logger.info("library.missing_dir", path=str(directory))
        return []

    files = sorted(
        entry.name
        for entry in directory.iterdir()
        if entry.is_file() and entry.name.lower().endswith(MIDI_SUFFIXES)
    )
    logger.info("library.listed", path=str(directory), songs=len(files))
    return files


def pick_random_song(files: Sequence[str], rng: random.Random | None = None) -> str:
    """Pick one song uniformly at random."""
    if not files:
        raise NoSongsAvailable("No MIDI files available")
    return (rng or random).choice(list(files))
