"""Terminal front-end for all three game modes."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional

from websockets.exceptions import WebSocketException

from .client import ClientSession, SessionState, Transport, WebSocketTransport
from .config import Settings
from .game import LocalGame, Mode

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]

HELP = "Enter 1-9 to play a cell, 'r' to reset, 'q' to quit."


def render(view: Dict[str, object]) -> str:
    """Draw the board; cells on the winning line are bracketed."""

    board = view["board"]
    line = view.get("winningLine") or []
    cells = []
    for index, cell in enumerate(board):
        mark = cell or str(index + 1)
        cells.append(f"[{mark}]" if index in line else f" {mark} ")
    rows = ["|".join(cells[r * 3 : r * 3 + 3]) for r in range(3)]
    out = "\n---+---+---\n".join(rows)

    scores = view["scores"]
    winner = view.get("winner")
    if winner == "Draw":
        status = "Draw"
    elif winner:
        status = f"Winner: {winner}"
    else:
        status = f"Turn: {view['turn']}"
    return (
        f"{out}\n{status}   "
        f"X {scores['X']} | O {scores['O']} | Draws {scores['Draws']}"
    )


def _parse_cell(command: str) -> Optional[int]:
    if len(command) == 1 and command in "123456789":
        return int(command) - 1
    return None


def run_local(
    mode: Mode,
    settings: Settings,
    read: InputFn = input,
    write: OutputFn = print,
) -> LocalGame:
    user_symbol = None
    if mode is Mode.SINGLE:
        while user_symbol not in ("X", "O"):
            user_symbol = read("Play as X or O? ").strip().upper()
    game = LocalGame(mode=mode, user_symbol=user_symbol)
    write(HELP)

    while True:
        if game.is_ai_turn:
            time.sleep(settings.ai_delay)
            game.ai_turn()
        write(render(game.view()))
        command = read("> ").strip().lower()
        if command == "q":
            game.quit()
            return game
        if command == "r":
            game.reset()
            continue
        index = _parse_cell(command)
        if index is None or not game.click(index):
            write("That move is not available.")


def run_online(
    settings: Settings,
    room: Optional[str] = None,
    read: InputFn = input,
    write: OutputFn = print,
    connect: Optional[Callable[[], Transport]] = None,
) -> ClientSession:
    def on_change(session: ClientSession) -> None:
        view = session.view()
        if session.state is SessionState.AWAITING_OPPONENT:
            write(f"You are {view['symbol']}. Share room code {view['roomCode']}.")
        elif session.state in (SessionState.PLAYING, SessionState.GAME_OVER):
            write(render(view))
        elif session.state is SessionState.DISCONNECTED and view["error"]:
            write(f"Error: {view['error']}")

    def connect_websocket() -> Transport:
        return WebSocketTransport(settings.server_url)

    session = ClientSession(connect or connect_websocket, on_change)
    try:
        if room:
            session.join_room(room)
        else:
            code = session.create_room()
            write(f"Created room {code}")
    except (OSError, WebSocketException):
        # on_change has already reported session.error
        return session
    listener = threading.Thread(target=session.listen, daemon=True)
    listener.start()
    write(HELP)

    while session.state is not SessionState.DISCONNECTED:
        command = read("> ").strip().lower()
        if command == "q":
            break
        if command == "r":
            session.reset()
            continue
        index = _parse_cell(command)
        if index is None or not session.click(index):
            write("Wait for your turn and pick an empty cell.")

    session.close()
    listener.join(timeout=1.0)
    return session
