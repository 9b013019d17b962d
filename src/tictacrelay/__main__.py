"""Entry point for running TicTacRelay via ``python -m tictacrelay``."""

from __future__ import annotations

import argparse
import dataclasses
import logging
from typing import List, Optional

import uvicorn

from .config import Settings
from .console import run_local, run_online
from .game import Mode


def main(argv: Optional[List[str]] = None) -> None:
    """Serve the relay or play a game in the terminal."""

    settings = Settings.from_env()
    parser = argparse.ArgumentParser(prog="tictacrelay")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="run the room relay server")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    play = commands.add_parser("play", help="play in the terminal")
    play.add_argument("mode", choices=[mode.value for mode in Mode])
    play.add_argument("--room", help="room code to join (multi mode)")
    play.add_argument("--url", default=settings.server_url, help="relay WebSocket URL")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        uvicorn.run(
            "tictacrelay.server:app",
            host=args.host,
            port=args.port,
            reload=False,
            log_level=settings.log_level.lower(),
        )
        return

    mode = Mode(args.mode)
    if mode is Mode.MULTI:
        run_online(dataclasses.replace(settings, server_url=args.url), args.room)
    else:
        run_local(mode, settings)


if __name__ == "__main__":
    main()
