"""Client side of the online mode: connection, room joining and state sync."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from websockets.exceptions import ConnectionClosed
from websockets.sync.client import connect as ws_connect

from .board import Board, Symbol, empty_board, evaluate
from .game import Scoreboard
from .protocol import (
    ERROR,
    GAME_READY,
    GAME_RESET,
    JOIN_ROOM,
    MAKE_MOVE,
    MOVE_MADE,
    PLAYER_ASSIGNMENT,
    RESET_GAME,
    ProtocolError,
    decode_frame,
    envelope,
    parse_board_state,
)
from .rooms import normalize_room_code

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 6


class TransportClosed(Exception):
    pass


class Transport(Protocol):
    def send_json(self, message: Dict[str, Any]) -> None: ...

    def receive_json(self) -> Dict[str, Any]: ...

    def close(self) -> None: ...


class WebSocketTransport:
    """JSON frames over the synchronous ``websockets`` client."""

    def __init__(self, url: str, open_timeout: float = 10.0) -> None:
        self.url = url
        self._ws = ws_connect(url, open_timeout=open_timeout)

    def send_json(self, message: Dict[str, Any]) -> None:
        try:
            self._ws.send(json.dumps(message))
        except ConnectionClosed as exc:
            raise TransportClosed(str(exc)) from exc

    def receive_json(self) -> Dict[str, Any]:
        try:
            return decode_frame(self._ws.recv())
        except ConnectionClosed as exc:
            raise TransportClosed(str(exc)) from exc

    def close(self) -> None:
        self._ws.close()


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_ASSIGNMENT = "awaiting_assignment"
    AWAITING_OPPONENT = "awaiting_opponent"
    PLAYING = "playing"
    GAME_OVER = "game_over"


def generate_room_code() -> str:
    return uuid.uuid4().hex[:ROOM_CODE_LENGTH].upper()


class ClientSession:
    """Mirrors one room's state as pushed by the relay server.

    The local board only ever changes when the server says so; clicks are
    forwarded as move requests and shown once the broadcast comes back.
    """

    def __init__(
        self,
        connect: Callable[[], Transport],
        on_change: Optional[Callable[["ClientSession"], None]] = None,
    ) -> None:
        self._connect = connect
        self.on_change = on_change
        self.state = SessionState.DISCONNECTED
        self.room_code: Optional[str] = None
        self.symbol: Optional[Symbol] = None
        self.board: Board = empty_board()
        self.turn: Symbol = "X"
        self.winner: Optional[str] = None
        self.winning_line: Optional[Tuple[int, int, int]] = None
        self.error: Optional[str] = None
        self.scores = Scoreboard()
        self._transport: Optional[Transport] = None
        self._lock = threading.RLock()
        self._handlers: Dict[str, Callable[[Any], None]] = {
            PLAYER_ASSIGNMENT: self._on_assignment,
            GAME_READY: self._on_ready,
            MOVE_MADE: self._on_move_made,
            GAME_RESET: self._on_reset,
            ERROR: self._on_error,
        }

    # ---- user intents ----

    def create_room(self) -> str:
        """Join a freshly generated code; an existing room is joined as is."""

        code = generate_room_code()
        self.join_room(code)
        return code

    def join_room(self, code: str) -> None:
        code = normalize_room_code(code)
        with self._lock:
            if self._transport is not None:
                raise RuntimeError("Session already has an open connection")
            self.room_code = code
            self.symbol = None
            self.error = None
            self._set_state(SessionState.CONNECTING)
            try:
                self._transport = self._connect()
            except Exception as exc:
                self.error = f"Could not connect: {exc}"
                self._set_state(SessionState.DISCONNECTED)
                raise
            logger.info("Joining room %s", code)
            self._send(envelope(JOIN_ROOM, code))
            self._set_state(SessionState.AWAITING_ASSIGNMENT)

    def click(self, index: int) -> bool:
        with self._lock:
            if self.state is not SessionState.PLAYING or self.symbol != self.turn:
                return False
            if not 0 <= index < 9 or self.board[index] is not None:
                return False
            self._send(
                envelope(
                    MAKE_MOVE,
                    {"roomCode": self.room_code, "index": index, "symbol": self.symbol},
                )
            )
            return True

    def reset(self) -> bool:
        with self._lock:
            if self.state not in (SessionState.PLAYING, SessionState.GAME_OVER):
                return False
            self._send(envelope(RESET_GAME, self.room_code))
            return True

    def close(self) -> None:
        """Leave the room. There is no resume; a later join starts fresh."""

        with self._lock:
            self._drop_transport()
            self.scores.clear()
            self.board = empty_board()
            self.turn = "X"
            self.winner = None
            self.winning_line = None
            self.symbol = None
            self._set_state(SessionState.DISCONNECTED)

    # ---- inbound ----

    def receive(self) -> None:
        transport = self._transport
        if transport is None:
            raise TransportClosed("Session is not connected")
        try:
            message = transport.receive_json()
        except ProtocolError as exc:
            logger.warning("Dropping frame: %s", exc)
            return
        self.handle_message(message)

    def listen(self) -> None:
        """Handle messages until the connection goes away."""

        while self._transport is not None:
            try:
                self.receive()
            except TransportClosed:
                break
        with self._lock:
            if self.state is not SessionState.DISCONNECTED:
                self._drop_transport()
                self._set_state(SessionState.DISCONNECTED)

    def handle_message(self, message: Dict[str, Any]) -> None:
        if not isinstance(message, dict):
            logger.warning("Dropping non-object message: %r", message)
            return
        handler = self._handlers.get(message.get("type"))
        if handler is None:
            logger.warning("Unknown message type: %s", message.get("type"))
            return
        with self._lock:
            try:
                handler(message.get("data"))
            except ProtocolError as exc:
                logger.warning("Ignoring %s: %s", message.get("type"), exc)

    def view(self) -> Dict[str, object]:
        with self._lock:
            return {
                "state": self.state.value,
                "roomCode": self.room_code,
                "symbol": self.symbol,
                "board": list(self.board),
                "turn": self.turn,
                "winner": self.winner,
                "winningLine": list(self.winning_line) if self.winning_line else None,
                "scores": self.scores.as_dict(),
                "error": self.error,
            }

    # ---- handlers ----

    def _on_assignment(self, data: Any) -> None:
        if data not in ("X", "O"):
            raise ProtocolError(f"Invalid symbol {data!r}")
        self.symbol = data
        self.error = None
        self._set_state(SessionState.AWAITING_OPPONENT)

    def _on_ready(self, data: Any) -> None:
        self._adopt(data)
        self.winner = None
        self.winning_line = None
        self._set_state(SessionState.PLAYING)

    def _on_move_made(self, data: Any) -> None:
        self._adopt(data)
        outcome = evaluate(self.board)
        if outcome is None:
            self._set_state(SessionState.PLAYING)
            return
        self.winner = outcome.winner
        self.winning_line = outcome.line
        if self.state is not SessionState.GAME_OVER:
            self.scores.record(outcome)
        self._set_state(SessionState.GAME_OVER)

    def _on_reset(self, data: Any) -> None:
        self._adopt(data)
        self.winner = None
        self.winning_line = None
        self._set_state(SessionState.PLAYING)

    def _on_error(self, data: Any) -> None:
        self.error = str(data)
        logger.error("Server error: %s", self.error)
        self._drop_transport()
        self._set_state(SessionState.DISCONNECTED)

    # ---- helpers ----

    def _adopt(self, data: Any) -> None:
        state = parse_board_state(data)
        self.board = list(state.board)
        self.turn = state.turn

    def _send(self, message: Dict[str, Any]) -> None:
        if self._transport is None:
            raise TransportClosed("Session is not connected")
        self._transport.send_json(message)

    def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        if self.on_change is not None:
            self.on_change(self)
