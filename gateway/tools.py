from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from adapters.base import DatabaseAdapter, first_successful, validate_table_name
from adapters.sql_renderer import get_sql_dialect
from gateway.guards import validate_read_sql
from utils.audit import AuditSink, NullAuditSink, json_default

logger = logging.getLogger(__name__)

INSPECT_ROW_LIMIT = 5
DDL_UNAVAILABLE = "DDL not available for this table or database type."

READ_QUERY_TOOL: Dict[str, Any] = {
    "name": "read_query",
    "description": (
        "Execute a read-only SQL query (SELECT). MySQL/SQLite use '?', PostgreSQL uses '$1', "
        "SQL Server and Oracle take '?' and bind them as '@p0' / ':0' internally."
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The SQL SELECT query to execute"},
            "params": {"type": "array", "items": {}, "description": "Optional parameters for the query"},
        },
        "required": ["query"],
    },
}

WRITE_QUERY_TOOL: Dict[str, Any] = {
    "name": "write_query",
    "description": "Execute a write SQL query (INSERT, UPDATE, DELETE, CREATE, DROP, ALTER). Use with caution.",
    "inputSchema": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The SQL query to execute"},
            "params": {"type": "array", "items": {}, "description": "Optional parameters for the query"},
        },
        "required": ["query"],
    },
}


def _table_tool(name: str, description: str, field_description: str) -> Dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "inputSchema": {
            "type": "object",
            "properties": {"table_name": {"type": "string", "description": field_description}},
            "required": ["table_name"],
        },
    }


LIST_TABLES_TOOL: Dict[str, Any] = {
    "name": "list_tables",
    "description": "List all tables in the database.",
    "inputSchema": {"type": "object", "properties": {}},
}
DESCRIBE_TABLE_TOOL = _table_tool(
    "describe_table",
    "Get the schema information for a specific table.",
    "The name of the table to describe",
)
GET_TABLE_DDL_TOOL = _table_tool(
    "get_table_ddl",
    "Get the CREATE TABLE statement (DDL) for a specific table. Useful for understanding constraints, indexes, and defaults.",
    "The name of the table",
)
INSPECT_TABLE_TOOL = _table_tool(
    "inspect_table",
    f"Get the first {INSPECT_ROW_LIMIT} rows of a table to understand the data distribution and format.",
    "The name of the table to inspect",
)


class ToolError(ValueError):
    pass


@dataclass
class ToolResult:
    text: str
    is_error: bool = False
    summary: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            payload["isError"] = True
        return payload


def _dumps(value: Any) -> str:
    return json.dumps(value, indent=2, default=json_default)


class ToolDispatcher:
    """Maps named tool invocations onto the one adapter, one call at a time.

    Every call, successful or not, leaves exactly one audit record.
    """

    def __init__(self, adapter: DatabaseAdapter, audit_sink: Optional[AuditSink] = None, read_only: bool = False):
        self.adapter = adapter
        self.audit_sink = audit_sink or NullAuditSink()
        self.read_only = read_only
        self._lock = threading.Lock()
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Tuple[ToolResult, Optional[str]]]] = {
            "read_query": self._read_query,
            "write_query": self._write_query,
            "list_tables": self._list_tables,
            "describe_table": self._describe_table,
            "get_table_ddl": self._get_table_ddl,
            "inspect_table": self._inspect_table,
        }

    def list_tools(self) -> List[Dict[str, Any]]:
        tools = [READ_QUERY_TOOL, LIST_TABLES_TOOL, DESCRIBE_TABLE_TOOL, GET_TABLE_DDL_TOOL, INSPECT_TABLE_TOOL]
        if not self.read_only:
            tools.append(WRITE_QUERY_TOOL)
        return tools

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        args = arguments or {}
        audited_query: Optional[str] = args.get("query") if isinstance(args.get("query"), str) else None
        audited_params = args.get("params") if isinstance(args.get("params"), list) else None

        with self._lock:
            started = time.perf_counter()
            try:
                handler = self._handlers.get(name)
                if handler is None:
                    raise ToolError(f"Unknown tool: {name}")
                result, executed_query = handler(args)
                if executed_query is not None:
                    audited_query = executed_query
            except Exception as exc:
                message = str(exc)
                logger.warning("Tool %s failed: %s", name, message)
                self._audit(
                    name,
                    duration_ms=_elapsed_ms(started),
                    success=False,
                    query=audited_query,
                    params=audited_params,
                    error=message,
                )
                return ToolResult(text=f"Error: {message}", is_error=True)

            self._audit(
                name,
                duration_ms=_elapsed_ms(started),
                success=True,
                query=audited_query,
                params=audited_params,
                result_summary=json.dumps(result.summary, default=json_default),
            )
            return result

    def _audit(self, name: str, **fields: Any) -> None:
        try:
            self.audit_sink.record(name, **fields)
        except Exception as exc:
            logger.warning("Audit write failed for tool %s: %s", name, exc)

    def _read_query(self, args: Dict[str, Any]) -> Tuple[ToolResult, Optional[str]]:
        sql = validate_read_sql(_require_str(args, "query"))
        rows = self.adapter.query(sql, _optional_params(args))
        return ToolResult(text=_dumps(rows), summary={"rows": len(rows)}), None

    def _write_query(self, args: Dict[str, Any]) -> Tuple[ToolResult, Optional[str]]:
        if self.read_only:
            raise ToolError("Write operations are disabled by configuration (MCP_DB_READ_ONLY=true).")
        result = self.adapter.execute(_require_str(args, "query"), _optional_params(args))
        payload = result.to_dict()
        summary = {key: value for key, value in payload.items() if key != "rows"}
        return ToolResult(text=_dumps(payload), summary=summary), None

    def _list_tables(self, args: Dict[str, Any]) -> Tuple[ToolResult, Optional[str]]:
        tables = self.adapter.list_tables()
        return ToolResult(text=_dumps(tables), summary={"table_count": len(tables)}), None

    def _describe_table(self, args: Dict[str, Any]) -> Tuple[ToolResult, Optional[str]]:
        info = self.adapter.describe_table(_require_str(args, "table_name"))
        return ToolResult(text=_dumps(info.to_dict()), summary={"columns": len(info.columns)}), None

    def _get_table_ddl(self, args: Dict[str, Any]) -> Tuple[ToolResult, Optional[str]]:
        ddl = self.adapter.get_table_ddl(_require_str(args, "table_name"))
        return ToolResult(text=ddl or DDL_UNAVAILABLE, summary={"found": bool(ddl)}), None

    def _inspect_table(self, args: Dict[str, Any]) -> Tuple[ToolResult, Optional[str]]:
        table_name = validate_table_name(_require_str(args, "table_name"))
        candidates = get_sql_dialect(self.adapter.engine).top_n_candidates(table_name, INSPECT_ROW_LIMIT)
        sql, rows = first_successful([lambda sql=sql: (sql, self.adapter.query(sql)) for sql in candidates])
        return ToolResult(text=_dumps(rows), summary={"rows": len(rows)}), sql


def _require_str(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value:
        raise ToolError(f"'{key}' is required and must be a string")
    return value


def _optional_params(args: Dict[str, Any]) -> Optional[Sequence[Any]]:
    params = args.get("params")
    if params is None:
        return None
    if not isinstance(params, list):
        raise ToolError("'params' must be an array")
    return params


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
