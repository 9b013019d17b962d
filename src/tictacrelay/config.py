"""Environment-driven settings for the relay server and console client."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .rooms import CleanupPolicy

ENV_PREFIX = "TICTACRELAY_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _flag(value: str, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {value!r}")


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    room_cleanup: CleanupPolicy = CleanupPolicy.NEVER
    bind_symbols: bool = False
    server_url: str = "ws://localhost:8000/ws"
    ai_delay: float = 0.5

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default)

        port = int(get("PORT", str(cls.port)))
        if not 0 < port < 65536:
            raise ValueError(f"{ENV_PREFIX}PORT out of range: {port}")
        ai_delay = float(get("AI_DELAY", str(cls.ai_delay)))
        if ai_delay < 0:
            raise ValueError(f"{ENV_PREFIX}AI_DELAY must not be negative")

        return cls(
            host=get("HOST", cls.host),
            port=port,
            log_level=get("LOG_LEVEL", cls.log_level).upper(),
            room_cleanup=CleanupPolicy(get("ROOM_CLEANUP", cls.room_cleanup.value)),
            bind_symbols=_flag(get("BIND_SYMBOLS", "0"), ENV_PREFIX + "BIND_SYMBOLS"),
            server_url=get("SERVER_URL", cls.server_url),
            ai_delay=ai_delay,
        )
