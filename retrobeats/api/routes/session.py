"""RETRO BEATS API — playback session routes (load, transport, reveal, guess)."""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from retrobeats.api.deps import get_session
from retrobeats.config import settings
from retrobeats.errors import (
    EngineUnavailable,
    LoadSuperseded,
    LoadTimeout,
    NoSongsAvailable,
    RetroBeatsError,
    SongLoadError,
)
from retrobeats.library import MIDI_SUFFIXES, list_midi_files
from retrobeats.session import PlaybackSession

router = APIRouter(prefix="/session", tags=["session"])

_ERROR_STATUS: dict[type[RetroBeatsError], int] = {
    NoSongsAvailable: 404,
    SongLoadError: 422,
    LoadSuperseded: 409,
    EngineUnavailable: 503,
    LoadTimeout: 504,
}


def _http_error(e: RetroBeatsError) -> HTTPException:
    return HTTPException(status_code=_ERROR_STATUS.get(type(e), 500), detail=str(e))


# ── Models ───────────────────────────────────────────────


class LoadRequest(BaseModel):
    """Load a song by file name, or a random one if omitted."""

    filename: str | None = None


class GuessRequest(BaseModel):
    """A guess at which game the song is from."""

    guess: str


# ── Endpoints ────────────────────────────────────────────


@router.post("/load")
async def load_song(req: LoadRequest, session: PlaybackSession = Depends(get_session)) -> dict:
    """Load a song and start a fresh round."""
    try:
        if req.filename:
            if req.filename not in list_midi_files(session.library_dir):
                raise HTTPException(status_code=404, detail=f"Song {req.filename} not found")
            await session.load_song(session.library_dir / req.filename)
        else:
            await session.load_random_song()
    except RetroBeatsError as e:
        raise _http_error(e) from None
    return session.snapshot()


@router.post("/upload")
async def upload_song(
    file: Annotated[UploadFile, File(...)],
    session: PlaybackSession = Depends(get_session),
) -> dict:
    """Load a .mid/.midi file sent from the user's disk.

    The file keeps its original name, since guesses are matched against it.
    """
    if not file.filename:
        raise HTTPException(status_code=422, detail="No filename provided")

    name = Path(file.filename).name
    if not name.lower().endswith(MIDI_SUFFIXES):
        raise HTTPException(
            status_code=422,
            detail=f"Unsupported file: {name}. Use: {', '.join(MIDI_SUFFIXES)}",
        )

    upload_dir = settings.upload_dir / uuid.uuid4().hex[:8]
    upload_dir.mkdir(parents=True, exist_ok=True)
    upload_path = upload_dir / name
    upload_path.write_bytes(await file.read())

    try:
        await session.load_song(upload_path)
    except RetroBeatsError as e:
        raise _http_error(e) from None
    return session.snapshot()


@router.get("/state")
def get_state(session: PlaybackSession = Depends(get_session)) -> dict:
    """Current playback and reveal state."""
    return session.snapshot()


@router.post("/play")
def play(session: PlaybackSession = Depends(get_session)) -> dict:
    return {"allowed": session.play(), **session.snapshot()}


@router.post("/pause")
def pause(session: PlaybackSession = Depends(get_session)) -> dict:
    return {"allowed": session.pause(), **session.snapshot()}


@router.post("/toggle")
def toggle_play(session: PlaybackSession = Depends(get_session)) -> dict:
    """Play if paused, pause if playing."""
    return {"allowed": session.toggle_play(), **session.snapshot()}


@router.post("/restart")
def restart(session: PlaybackSession = Depends(get_session)) -> dict:
    """Rewind and go back to the single opening track."""
    return {"allowed": session.restart(), **session.snapshot()}


@router.post("/reveal")
def reveal(session: PlaybackSession = Depends(get_session)) -> dict:
    """Spend a token to unmute the next track."""
    result = session.reveal_more()
    return {"result": result.to_dict(), **session.snapshot()}


@router.post("/mute-all")
def mute_all(session: PlaybackSession = Depends(get_session)) -> dict:
    result = session.mute_all()
    return {"result": result.to_dict(), **session.snapshot()}


@router.post("/tracks/{track_id}/toggle")
def toggle_track(track_id: int, session: PlaybackSession = Depends(get_session)) -> dict:
    """Manually mute/unmute one track."""
    result = session.toggle_track(track_id)
    return {"result": result.to_dict(), **session.snapshot()}


@router.post("/guess")
def guess(req: GuessRequest, session: PlaybackSession = Depends(get_session)) -> dict:
    """Submit a guess for the current song."""
    result = session.submit_guess(req.guess)
    return {"result": result.to_dict(), **session.snapshot()}
