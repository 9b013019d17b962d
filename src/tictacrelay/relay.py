"""Server-side handler for the room join/move/reset protocol."""

from __future__ import annotations

import logging
from typing import Any, List

from .protocol import (
    ERROR,
    GAME_READY,
    GAME_RESET,
    MOVE_MADE,
    PLAYER_ASSIGNMENT,
    ROOM_FULL,
    JoinRoom,
    MakeMove,
    ProtocolError,
    ResetGame,
    envelope,
    parse_client_message,
)
from .rooms import Connection, IllegalMoveError, Room, RoomFullError, RoomRegistry

logger = logging.getLogger(__name__)


class RoomRelay:
    """Applies client messages to rooms and pushes full state back.

    Each handler mutates a room and broadcasts the result while holding that
    room's lock, so operations on one room never interleave.
    """

    def __init__(self, registry: RoomRegistry, bind_symbols: bool = False) -> None:
        self.registry = registry
        self.bind_symbols = bind_symbols

    async def dispatch(self, connection: Connection, raw: Any) -> None:
        try:
            message = parse_client_message(raw)
        except ProtocolError as exc:
            logger.warning("Dropping message from %s: %s", connection.id, exc)
            return

        if isinstance(message, JoinRoom):
            await self.join(connection, message.room_code)
        elif isinstance(message, MakeMove):
            await self.move(connection, message.room_code, message.index, message.symbol)
        elif isinstance(message, ResetGame):
            await self.reset(connection, message.room_code)

    async def join(self, connection: Connection, room_code: str) -> None:
        while True:
            room, _ = self.registry.get_or_create(room_code)
            async with room.lock:
                # Evicted while we waited for the lock; seat in the live room.
                if self.registry.get(room.code) is not room:
                    continue
                await self._seat(connection, room)
                return

    async def move(
        self, connection: Connection, room_code: str, index: int, symbol: str
    ) -> None:
        room = self.registry.get(room_code)
        if room is None:
            logger.debug("Ignoring move for unknown room %s", room_code)
            return
        async with room.lock:
            if self.bind_symbols and room.symbol_of(connection.id) != symbol:
                logger.debug(
                    "Ignoring move by %s claiming %s in room %s",
                    connection.id,
                    symbol,
                    room.code,
                )
                return
            try:
                room.apply_move(index, symbol)
            except IllegalMoveError as exc:
                logger.debug("Ignoring move in room %s: %s", room.code, exc)
                return
            await self._broadcast(room, MOVE_MADE)

    async def reset(self, connection: Connection, room_code: str) -> None:
        room = self.registry.get(room_code)
        if room is None:
            logger.debug("Ignoring reset for unknown room %s", room_code)
            return
        async with room.lock:
            room.reset()
            logger.info("Room %s reset by %s", room.code, connection.id)
            await self._broadcast(room, GAME_RESET)

    async def disconnect(self, connection: Connection) -> List[str]:
        logger.info("Connection %s closed", connection.id)
        return self.registry.release(connection.id)

    # ---- helpers ----

    async def _seat(self, connection: Connection, room: Room) -> None:
        already_seated = connection.id in room.symbols
        try:
            symbol = room.seat(connection.id)
        except RoomFullError:
            logger.info("Rejected %s from full room %s", connection.id, room.code)
            await self._send(connection, envelope(ERROR, ROOM_FULL))
            return

        room.connections[connection.id] = connection
        await self._send(connection, envelope(PLAYER_ASSIGNMENT, symbol))
        if already_seated:
            return
        logger.info("Seated %s in room %s as %s", connection.id, room.code, symbol)
        if room.is_full:
            await self._broadcast(room, GAME_READY)

    async def _broadcast(self, room: Room, message_type: str) -> None:
        message = envelope(message_type, room.snapshot())
        for member in list(room.connections.values()):
            await self._send(member, message)

    async def _send(self, connection: Connection, message: dict) -> None:
        try:
            await connection.send_json(message)
        except RuntimeError as exc:
            logger.debug("Could not deliver %s to %s: %s", message["type"], connection.id, exc)
