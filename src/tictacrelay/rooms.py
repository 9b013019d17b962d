"""In-memory room registry for online games."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

from .board import SYMBOLS, Board, Symbol, empty_board, opponent

logger = logging.getLogger(__name__)

MAX_PARTICIPANTS = 2


class RoomFullError(ValueError):
    pass


class IllegalMoveError(ValueError):
    pass


class Connection(Protocol):
    """One client connection; ``id`` is stable for the connection's lifetime."""

    id: str

    async def send_json(self, message: Dict[str, Any]) -> None: ...


class RoomState(str, Enum):
    WAITING_FOR_FIRST_PLAYER = "waiting_for_first_player"
    WAITING_FOR_SECOND_PLAYER = "waiting_for_second_player"
    READY = "ready"


class CleanupPolicy(str, Enum):
    """What happens to a room when its participants disconnect."""

    NEVER = "never"
    EVICT_EMPTY = "evict-empty"


def normalize_room_code(code: str) -> str:
    normalized = code.strip().upper()
    if not normalized:
        raise ValueError("Room code must not be empty")
    return normalized


@dataclass
class Room:
    """Board, turn and seating for one room code."""

    code: str
    board: Board = field(default_factory=empty_board)
    turn: Symbol = "X"
    participants: List[str] = field(default_factory=list)
    symbols: Dict[str, Symbol] = field(default_factory=dict)
    created_at: float = field(default_factory=lambda: time.time())
    connections: Dict[str, Connection] = field(default_factory=dict, repr=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def state(self) -> RoomState:
        if not self.participants:
            return RoomState.WAITING_FOR_FIRST_PLAYER
        if len(self.participants) == 1:
            return RoomState.WAITING_FOR_SECOND_PLAYER
        return RoomState.READY

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= MAX_PARTICIPANTS

    def symbol_of(self, participant_id: str) -> Optional[Symbol]:
        return self.symbols.get(participant_id)

    def seat(self, participant_id: str) -> Symbol:
        """Seat a participant: first gets X, second gets O."""

        if participant_id in self.symbols:
            return self.symbols[participant_id]
        if self.is_full:
            raise RoomFullError("Room is full")
        taken = set(self.symbols.values())
        symbol = next(s for s in SYMBOLS if s not in taken)
        self.participants.append(participant_id)
        self.symbols[participant_id] = symbol
        return symbol

    def unseat(self, participant_id: str) -> None:
        if participant_id in self.symbols:
            self.participants.remove(participant_id)
            del self.symbols[participant_id]

    def apply_move(self, index: int, symbol: Symbol) -> None:
        if not 0 <= index < 9:
            raise IllegalMoveError(f"Cell {index} is off the board")
        if self.turn != symbol:
            raise IllegalMoveError(f"It is {self.turn}'s turn, not {symbol}'s")
        if self.board[index] is not None:
            raise IllegalMoveError(f"Cell {index} is already occupied")
        self.board[index] = symbol
        self.turn = opponent(symbol)

    def reset(self) -> None:
        self.board = empty_board()
        self.turn = "X"

    def snapshot(self) -> Dict[str, object]:
        return {"board": list(self.board), "turn": self.turn}


class RoomRegistry:
    """Maps room codes to rooms for the lifetime of the server process."""

    def __init__(self, cleanup: CleanupPolicy = CleanupPolicy.NEVER) -> None:
        self.cleanup = CleanupPolicy(cleanup)
        self._rooms: Dict[str, Room] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.strip().upper() in self._rooms

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._rooms))

    def get(self, code: str) -> Optional[Room]:
        try:
            return self._rooms.get(normalize_room_code(code))
        except ValueError:
            return None

    def get_or_create(self, code: str) -> Tuple[Room, bool]:
        normalized = normalize_room_code(code)
        room = self._rooms.get(normalized)
        if room:
            return room, False
        room = Room(code=normalized)
        self._rooms[normalized] = room
        logger.info("Created room %s", normalized)
        return room, True

    def release(self, connection_id: str) -> List[str]:
        """Detach a closed connection from every room it belonged to.

        Returns the codes of rooms evicted as a result.
        """

        evicted: List[str] = []
        for code, room in list(self._rooms.items()):
            if connection_id not in room.connections and connection_id not in room.symbols:
                continue
            room.connections.pop(connection_id, None)
            if self.cleanup is CleanupPolicy.NEVER:
                continue
            room.unseat(connection_id)
            if not room.participants and not room.connections:
                self._rooms.pop(code, None)
                evicted.append(code)
                logger.info("Evicted empty room %s", code)
        return evicted
