"""Local game modes: single player against the AI and two players on one device."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .ai import MinimaxAI
from .board import DRAW, Board, Outcome, Symbol, empty_board, evaluate, opponent


class Mode(str, Enum):
    SINGLE = "single"
    MULTI = "multi"
    OFFLINE = "offline"


@dataclass
class Scoreboard:
    """Win/draw tallies for one mode."""

    x: int = 0
    o: int = 0
    draws: int = 0

    def record(self, outcome: Outcome) -> None:
        if outcome.winner == "X":
            self.x += 1
        elif outcome.winner == "O":
            self.o += 1
        elif outcome.winner == DRAW:
            self.draws += 1

    def clear(self) -> None:
        self.x = self.o = self.draws = 0

    def as_dict(self) -> Dict[str, int]:
        return {"X": self.x, "O": self.o, "Draws": self.draws}


@dataclass
class LocalGame:
    """A game played entirely on this device."""

    mode: Mode
    user_symbol: Optional[Symbol] = None
    board: Board = field(default_factory=empty_board)
    turn: Symbol = "X"
    winner: Optional[str] = None
    winning_line: Optional[Tuple[int, int, int]] = None
    scores: Scoreboard = field(default_factory=Scoreboard)
    ai: Optional[MinimaxAI] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.mode = Mode(self.mode)
        if self.mode is Mode.MULTI:
            raise ValueError("Online games are played through a ClientSession")
        if self.mode is Mode.SINGLE:
            if self.user_symbol is None:
                raise ValueError("Single player mode needs a user symbol")
            self.ai = MinimaxAI(player=opponent(self.user_symbol))

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    @property
    def is_ai_turn(self) -> bool:
        return self.ai is not None and not self.is_over and self.turn == self.ai.player

    def click(self, index: int) -> bool:
        """Play ``index`` for whoever is on turn; returns False if ignored."""

        if not 0 <= index < 9 or self.board[index] is not None or self.is_over:
            return False
        if self.is_ai_turn:
            return False
        self._place(index)
        return True

    def ai_turn(self) -> Optional[int]:
        if not self.is_ai_turn:
            return None
        index = self.ai.choose(self.board)
        self._place(index)
        return index

    def reset(self) -> None:
        self.board = empty_board()
        self.turn = "X"
        self.winner = None
        self.winning_line = None

    def quit(self) -> None:
        self.reset()
        self.scores.clear()

    def view(self) -> Dict[str, object]:
        return {
            "mode": self.mode.value,
            "board": list(self.board),
            "turn": self.turn,
            "winner": self.winner,
            "winningLine": list(self.winning_line) if self.winning_line else None,
            "scores": self.scores.as_dict(),
        }

    # ---- helpers ----

    def _place(self, index: int) -> None:
        self.board[index] = self.turn
        self.turn = opponent(self.turn)
        outcome = evaluate(self.board)
        if outcome is not None:
            self.winner = outcome.winner
            self.winning_line = outcome.line
            self.scores.record(outcome)
