"""Wire messages exchanged over the relay WebSocket."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .rooms import normalize_room_code

JOIN_ROOM = "join_room"
MAKE_MOVE = "make_move"
RESET_GAME = "reset_game"

PLAYER_ASSIGNMENT = "player_assignment"
GAME_READY = "game_ready"
MOVE_MADE = "move_made"
GAME_RESET = "game_reset"
ERROR = "error"

ROOM_FULL = "Room is full"


class ProtocolError(ValueError):
    pass


class _RoomMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_code: str = Field(alias="roomCode")

    @field_validator("room_code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return normalize_room_code(value)


class JoinRoom(_RoomMessage):
    type: Literal["join_room"] = JOIN_ROOM


class ResetGame(_RoomMessage):
    type: Literal["reset_game"] = RESET_GAME


class MakeMove(_RoomMessage):
    type: Literal["make_move"] = MAKE_MOVE
    index: int = Field(ge=0, le=8)
    symbol: Literal["X", "O"]


class BoardState(BaseModel):
    """Full board and turn, pushed after every state change."""

    board: List[Optional[Literal["X", "O"]]] = Field(min_length=9, max_length=9)
    turn: Literal["X", "O"]


ClientMessage = Union[JoinRoom, MakeMove, ResetGame]


def envelope(message_type: str, data: Any) -> Dict[str, Any]:
    return {"type": message_type, "data": data}


def decode_frame(text: Any) -> Dict[str, Any]:
    """Decode one text frame into a message object."""

    try:
        message = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Frame is not valid JSON: {exc}") from exc
    if not isinstance(message, dict):
        raise ProtocolError("Frame must be a JSON object")
    return message


def parse_client_message(raw: Any) -> ClientMessage:
    """Validate a decoded JSON frame sent by a client."""

    if not isinstance(raw, dict) or "type" not in raw:
        raise ProtocolError("Message must be an object with a 'type'")
    message_type = raw["type"]
    data = raw.get("data")
    try:
        if message_type == JOIN_ROOM:
            return JoinRoom(room_code=_code_payload(data))
        if message_type == RESET_GAME:
            return ResetGame(room_code=_code_payload(data))
        if message_type == MAKE_MOVE:
            if not isinstance(data, dict):
                raise ProtocolError("make_move expects an object payload")
            return MakeMove.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError(f"Invalid {message_type} payload: {exc}") from exc
    raise ProtocolError(f"Unknown message type {message_type!r}")


def parse_board_state(data: Any) -> BoardState:
    try:
        return BoardState.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError(f"Invalid board state: {exc}") from exc


def _code_payload(data: Any) -> str:
    if not isinstance(data, str):
        raise ProtocolError("Room code must be a string")
    return data
