"""FastAPI application hosting the room relay."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect

from .config import Settings
from .relay import RoomRelay
from .rooms import RoomRegistry

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class WebSocketConnection:
    """Adapts a Starlette WebSocket to the relay's connection interface."""

    websocket: WebSocket = field(repr=False)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    async def send_json(self, message: Dict[str, Any]) -> None:
        try:
            await self.websocket.send_json(message)
        except (RuntimeError, WebSocketDisconnect, OSError) as exc:
            logger.debug("Send to %s failed: %s", self.id, exc)


def create_app(
    settings: Optional[Settings] = None, registry: Optional[RoomRegistry] = None
) -> FastAPI:
    """Build an app around its own registry so instances never share rooms."""

    settings = settings or Settings()
    registry = registry or RoomRegistry(cleanup=settings.room_cleanup)
    relay = RoomRelay(registry, bind_symbols=settings.bind_symbols)

    app = FastAPI(title="TicTacRelay", description="Tic-tac-toe room relay")
    app.state.settings = settings
    app.state.registry = registry
    app.state.relay = relay

    @app.get("/api/health")
    def health() -> Dict[str, object]:
        return {"status": "ok", "rooms": len(registry)}

    @app.get("/api/room/{room_code}")
    def inspect_room(room_code: str) -> Dict[str, object]:
        room = registry.get(room_code)
        if room is None:
            raise HTTPException(status_code=404, detail="Room not found")
        return {
            "roomCode": room.code,
            "state": room.state.value,
            "participants": len(room.participants),
            "available": not room.is_full,
            "createdAt": room.created_at,
            **room.snapshot(),
        }

    @app.websocket("/ws")
    async def relay_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        connection = WebSocketConnection(websocket)
        logger.info("Connection %s opened", connection.id)
        try:
            while True:
                try:
                    message = await websocket.receive_json()
                except (ValueError, KeyError) as exc:
                    logger.warning("Malformed frame from %s: %s", connection.id, exc)
                    continue
                await relay.dispatch(connection, message)
        except WebSocketDisconnect:
            pass
        finally:
            await relay.disconnect(connection)

    return app


app = create_app(Settings.from_env())
