"""WebSocket handler for live playback updates.

Clients connect to /ws and receive the session snapshot whenever the
position poll sees the playhead move or playback start/stop.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from retrobeats.session import PlaybackSession

logger = structlog.get_logger()


class ConnectionManager:
    """Fans session updates out to every connected client."""

    def __init__(self) -> None:
        self._connections: list[WebSocket] = []

    @property
    def count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        self._connections.append(websocket)
        logger.info("WebSocket connected", clients=len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket."""
        self._connections = [ws for ws in self._connections if ws != websocket]
        logger.info("WebSocket disconnected", clients=len(self._connections))

    async def broadcast(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload to all connections, dropping dead ones."""
        text = json.dumps(payload)
        dead: list[WebSocket] = []
        for ws in list(self._connections):
            try:
                if ws.client_state == WebSocketState.CONNECTED:
                    await ws.send_text(text)
            except Exception:
                dead.append(ws)

        for ws in dead:
            self.disconnect(ws)


# Global connection manager
manager = ConnectionManager()


async def websocket_endpoint(websocket: WebSocket, session: PlaybackSession) -> None:
    """WebSocket endpoint for live playback state.

    Usage from frontend:
        const ws = new WebSocket('ws://host:8000/ws')
        ws.onmessage = (event) => {
            const data = JSON.parse(event.data)
            // data.type: 'state' | 'position' | 'pong'
            // data.current_time, data.duration, data.tracks, data.tokens
        }
    """
    await manager.connect(websocket)
    try:
        await websocket.send_text(json.dumps({"type": "state", **session.snapshot()}))
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except ValueError:
                msg = None
            if not isinstance(msg, dict):
                logger.warning("websocket.bad_frame", size=len(data))
                await websocket.send_text(json.dumps({"type": "error", "detail": "Malformed message"}))
                continue
            if msg.get("action") == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
            elif msg.get("action") == "state":
                await websocket.send_text(json.dumps({"type": "state", **session.snapshot()}))
    except WebSocketDisconnect:
        manager.disconnect(websocket)
