from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .constants import DEFAULT_PACING_MS, DEFAULT_QUERY_PORT, DEFAULT_RCON_PORT, DEFAULT_TIMEOUT_MS


def _as_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class ServerConfig:
    rcon_password: str = field(default="", repr=False)
    rcon_port: int = DEFAULT_RCON_PORT
    query_port: int = DEFAULT_QUERY_PORT
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    pacing_ms: float = DEFAULT_PACING_MS


def load_config(environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    env = os.environ if environ is None else environ
    return ServerConfig(
        rcon_password=env.get("MINECRAFT_RCON_PASS", ""),
        rcon_port=_as_int(env.get("MINECRAFT_RCON_PORT"), DEFAULT_RCON_PORT),
        query_port=_as_int(env.get("MINECRAFT_SERVER_PORT"), DEFAULT_QUERY_PORT),
        timeout_ms=_as_int(env.get("MCWIRE_TIMEOUT_MS"), DEFAULT_TIMEOUT_MS),
        pacing_ms=_as_float(env.get("MCWIRE_PACING_MS"), DEFAULT_PACING_MS),
    )
