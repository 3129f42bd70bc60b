"""Tests for the MIDI song library."""

from __future__ import annotations

import random
from pathlib import Path

import pytest

from retrobeats.errors import NoSongsAvailable
from retrobeats.library import list_midi_files, pick_random_song


def test_lists_only_midi_files(tmp_path: Path) -> None:
    """Other files and directories are skipped."""
    for name in ("b.mid", "a.MIDI", "notes.txt", "c.midi.bak", "d.Mid"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "folder.mid").mkdir()

    assert list_midi_files(tmp_path) == ["a.MIDI", "b.mid", "d.Mid"]


def test_missing_directory_is_empty(tmp_path: Path) -> None:
    """A missing directory is an empty library."""
    assert list_midi_files(tmp_path / "nowhere") == []


def test_not_a_directory_raises(tmp_path: Path) -> None:
    """Listing a file instead of a directory raises OSError."""
    file_path = tmp_path / "file.mid"
    file_path.write_bytes(b"")
    with pytest.raises(OSError):
        list_midi_files(file_path)


def test_pick_random_song_is_seedable() -> None:
    """The same seed picks the same song."""
    files = ["a.mid", "b.mid", "c.mid", "d.mid"]
    first = pick_random_song(files, random.Random(42))
    second = pick_random_song(files, random.Random(42))
    assert first == second
    assert first in files


def test_pick_random_song_empty() -> None:
    """Picking from an empty library raises."""
    with pytest.raises(NoSongsAvailable):
        pick_random_song([])
