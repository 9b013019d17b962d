"""Core rules for a single 3x3 tic-tac-toe board."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

Symbol = str  # "X" or "O"
Cell = Optional[Symbol]
Board = List[Cell]

SYMBOLS: Tuple[Symbol, ...] = ("X", "O")
DRAW = "Draw"

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


@dataclass(frozen=True)
class Outcome:
    """A finished board: ``winner`` is "X", "O" or "Draw"."""

    winner: str
    line: Optional[Tuple[int, int, int]] = None

    @property
    def is_draw(self) -> bool:
        return self.winner == DRAW


def empty_board() -> Board:
    return [None] * 9


def opponent(symbol: Symbol) -> Symbol:
    if symbol not in SYMBOLS:
        raise ValueError(f"Unknown symbol {symbol!r}")
    return "O" if symbol == "X" else "X"


def validate_board(board: Sequence[Cell]) -> Board:
    """Return a copy of ``board`` after checking it holds 9 valid cells."""

    cells = list(board)
    if len(cells) != 9:
        raise ValueError(f"Board must have 9 cells, got {len(cells)}")
    for cell in cells:
        if cell is not None and cell not in SYMBOLS:
            raise ValueError(f"Invalid cell value {cell!r}")
    return cells


def available_moves(board: Sequence[Cell]) -> List[int]:
    return [index for index, cell in enumerate(board) if cell is None]


def evaluate(board: Sequence[Cell]) -> Optional[Outcome]:
    """Return the outcome of ``board``, or None while the game continues.

    Lines are scanned rows first, then columns, then diagonals; the first
    complete line wins.
    """

    for a, b, c in WINNING_LINES:
        v = board[a]
        if v is not None and v == board[b] == board[c]:
            return Outcome(winner=v, line=(a, b, c))
    if all(cell is not None for cell in board):
        return Outcome(winner=DRAW)
    return None
