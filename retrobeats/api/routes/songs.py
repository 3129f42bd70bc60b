"""RETRO BEATS API — song library routes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException

from retrobeats.api.deps import get_session
from retrobeats.library import list_midi_files
from retrobeats.session import PlaybackSession

router = APIRouter(tags=["songs"])

logger = structlog.get_logger()


@router.get("/midi-files")
def list_songs(session: PlaybackSession = Depends(get_session)) -> list[str]:
    """List every .mid/.midi file in the session's song directory."""
    try:
        return list_midi_files(session.library_dir)
    except OSError as e:
        logger.error("songs.list_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to read MIDI files") from None
