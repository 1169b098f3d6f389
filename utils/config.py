from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from utils.env_loader import load_environments

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765


class ConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class GatewaySettings:
    database_url: str
    read_only: bool = False
    log_path: Optional[str] = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def load_settings(env_path: str = ".env") -> GatewaySettings:
    load_environments(env_path)
    database_url = (os.getenv("DATABASE_URL") or "").strip()
    if not database_url:
        raise ConfigurationError("DATABASE_URL environment variable is required")

    port_raw = os.getenv("MCP_PORT", str(DEFAULT_PORT))
    try:
        port = int(port_raw)
    except ValueError as exc:
        raise ConfigurationError(f"MCP_PORT must be an integer, got {port_raw!r}") from exc

    return GatewaySettings(
        database_url=database_url,
        read_only=(os.getenv("MCP_DB_READ_ONLY", "") or "").strip().lower() == "true",
        log_path=os.getenv("MCP_LOG_PATH") or None,
        host=os.getenv("MCP_HOST", DEFAULT_HOST),
        port=port,
    )
