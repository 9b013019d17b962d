"""TicTacRelay package exposing board rules, the AI, the room relay and its client."""

from .ai import MinimaxAI, best_move
from .board import Outcome, evaluate
from .client import ClientSession
from .game import LocalGame, Mode
from .relay import RoomRelay
from .rooms import RoomRegistry
from .server import app, create_app

__all__ = [
    "ClientSession",
    "LocalGame",
    "MinimaxAI",
    "Mode",
    "Outcome",
    "RoomRegistry",
    "RoomRelay",
    "app",
    "best_move",
    "create_app",
    "evaluate",
]
