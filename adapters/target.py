from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import parse_qs, unquote, urlparse

SQLITE_PREFIXES = ("file://", "sqlite://")


@dataclass(frozen=True)
class ConnectionTarget:
    engine: str
    raw_url: str
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    options: Dict[str, str] = field(default_factory=dict)


def parse_target(url: str, engine: str, default_port: Optional[int] = None) -> ConnectionTarget:
    parsed = urlparse(url)
    options = {key: values[-1] for key, values in parse_qs(parsed.query).items()}
    return ConnectionTarget(
        engine=engine,
        raw_url=url,
        host=parsed.hostname,
        port=parsed.port or default_port,
        database=unquote(parsed.path.lstrip("/")) or None,
        user=unquote(parsed.username) if parsed.username else None,
        password=unquote(parsed.password) if parsed.password else None,
        options=options,
    )


def sqlite_path(url: str) -> str:
    for prefix in SQLITE_PREFIXES:
        if url[: len(prefix)].lower() == prefix:
            return url[len(prefix):]
    return url
