from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path("logs")


class AuditSink(Protocol):
    def record(
        self,
        tool: str,
        *,
        duration_ms: int,
        success: bool,
        query: Optional[str] = None,
        params: Optional[Sequence[Any]] = None,
        result_summary: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    return str(value)


def build_entry(
    tool: str,
    *,
    duration_ms: int,
    success: bool,
    query: Optional[str] = None,
    params: Optional[Sequence[Any]] = None,
    result_summary: Optional[str] = None,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"timestamp": _now_iso(), "tool": tool}
    if query:
        entry["query"] = query
    if params:
        entry["params"] = list(params)
    entry["duration_ms"] = int(duration_ms)
    entry["success"] = bool(success)
    if result_summary is not None:
        entry["result_summary"] = result_summary
    if error is not None:
        entry["error"] = error
    return entry


def resolve_log_dir(value: Optional[str]) -> Path:
    """A directory, or a ``.jsonl``/``.log`` file path whose parent is used."""
    if not value:
        return DEFAULT_LOG_DIR
    path = Path(value).expanduser().resolve()
    if path.suffix in {".jsonl", ".log"}:
        return path.parent
    return path


class NullAuditSink:
    def record(self, tool: str, **fields: Any) -> None:
        return None


class JsonlAuditSink:
    """Append-only JSON-lines audit trail, one file per UTC day."""

    def __init__(self, log_dir: Path | str = DEFAULT_LOG_DIR):
        self.log_dir = Path(log_dir)

    def log_file(self) -> Path:
        date_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return self.log_dir / f"mcp-audit-{date_str}.jsonl"

    def record(
        self,
        tool: str,
        *,
        duration_ms: int,
        success: bool,
        query: Optional[str] = None,
        params: Optional[Sequence[Any]] = None,
        result_summary: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        entry = build_entry(
            tool,
            duration_ms=duration_ms,
            success=success,
            query=query,
            params=params,
            result_summary=result_summary,
            error=error,
        )
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.log_file().open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry, default=json_default) + "\n")
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to write audit record: %s", exc)
