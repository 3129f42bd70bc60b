"""RETRO BEATS FastAPI server — main application."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from retrobeats.api.routes.session import router as session_router
from retrobeats.api.routes.songs import router as songs_router
from retrobeats.api.websocket import manager, websocket_endpoint
from retrobeats.config import settings
from retrobeats.engine.midi_out import midi_out_factory
from retrobeats.session import PlaybackSession

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """One playback session per process; closed (timers cancelled) on shutdown."""
    session = PlaybackSession(midi_out_factory(settings.midi_output_port), cfg=settings)
    session.add_listener(manager.broadcast)
    app.state.session = session
    logger.info("server.started", midi_dir=str(settings.midi_dir))
    try:
        yield
    finally:
        await session.close()
        app.state.session = None


app = FastAPI(
    title="RETRO BEATS",
    description="MIDI track-reveal player and guess-the-game toy.",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(songs_router, prefix="/api")
app.include_router(session_router, prefix="/api")


# WebSocket endpoint
@app.websocket("/ws")
async def ws_endpoint(websocket: WebSocket) -> None:
    """WebSocket for live playback updates."""
    await websocket_endpoint(websocket, websocket.app.state.session)


# ── Public routes ──
@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": "retrobeats"}


@app.get("/api/info")
async def info() -> dict[str, object]:
    """System information and available endpoints."""
    from retrobeats import __version__

    return {
        "name": "RETRO BEATS",
        "version": __version__,
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "midi_files": "GET /api/midi-files",
            "session_load": "POST /api/session/load",
            "session_upload": "POST /api/session/upload",
            "session_state": "GET /api/session/state",
            "session_play": "POST /api/session/play",
            "session_pause": "POST /api/session/pause",
            "session_toggle": "POST /api/session/toggle",
            "session_restart": "POST /api/session/restart",
            "session_reveal": "POST /api/session/reveal",
            "session_mute_all": "POST /api/session/mute-all",
            "session_track_toggle": "POST /api/session/tracks/{track_id}/toggle",
            "session_guess": "POST /api/session/guess",
            "websocket": "WS /ws",
        },
    }
