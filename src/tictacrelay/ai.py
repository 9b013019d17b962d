"""Exhaustive minimax AI for the 3x3 board."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence
import math

from .board import (
    SYMBOLS,
    Board,
    Cell,
    Symbol,
    available_moves,
    evaluate,
    opponent,
    validate_board,
)

WIN_SCORE = 10


def _minimax(
    board: Board,
    depth: int,
    maximizing: bool,
    ai_symbol: Symbol,
    alpha: float,
    beta: float,
) -> float:
    outcome = evaluate(board)
    if outcome is not None:
        if outcome.winner == ai_symbol:
            return WIN_SCORE - depth
        if outcome.is_draw:
            return 0
        return depth - WIN_SCORE

    mover = ai_symbol if maximizing else opponent(ai_symbol)
    value = -math.inf if maximizing else math.inf
    for index in available_moves(board):
        board[index] = mover
        score = _minimax(board, depth + 1, not maximizing, ai_symbol, alpha, beta)
        board[index] = None
        if maximizing:
            value = max(value, score)
            alpha = max(alpha, value)
        else:
            value = min(value, score)
            beta = min(beta, value)
        if alpha >= beta:
            break
    return value


def best_move(board: Sequence[Cell], ai_symbol: Symbol) -> int:
    """Pick the best cell for ``ai_symbol``.

    Faster wins score higher (``10 - depth``) and slower losses hurt less
    (``depth - 10``). Equal scores resolve to the lowest index.
    """

    if ai_symbol not in SYMBOLS:
        raise ValueError(f"Unknown symbol {ai_symbol!r}")
    cells = validate_board(board)
    moves = available_moves(cells)
    if not moves:
        raise ValueError("No valid moves available")
    best_score = -math.inf
    move = moves[0]
    for index in moves:
        cells[index] = ai_symbol
        score = _minimax(cells, 0, False, ai_symbol, best_score, math.inf)
        cells[index] = None
        if score > best_score:
            best_score = score
            move = index
    return move


@dataclass
class MinimaxAI:
    """AI opponent bound to one symbol."""

    player: Symbol

    def choose(self, board: Sequence[Cell]) -> int:
        return best_move(board, self.player)
