"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from retrobeats.session import PlaybackSession


def get_session(request: Request) -> PlaybackSession:
    """The app-wide playback session created in the lifespan hook."""
    session: PlaybackSession | None = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Playback session not started",
        )
    return session
