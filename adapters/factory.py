from __future__ import annotations

from typing import Optional

from adapters.base import DatabaseAdapter, UnsupportedProtocolError
from adapters.mssql import SqlServerAdapter
from adapters.mysql import MySQLAdapter
from adapters.oracle import OracleAdapter
from adapters.postgres import PostgresAdapter
from adapters.sqlite import SQLiteAdapter
from utils.audit import AuditSink

SUPPORTED_PROTOCOLS = "mysql, postgres, sqlite, mssql, oracle"


def create_adapter(url: str, audit_sink: Optional[AuditSink] = None) -> DatabaseAdapter:
    """Pick the adapter for ``url`` by scheme (or SQLite file suffix). Does no I/O."""
    candidate = (url or "").strip()
    lowered = candidate.lower()
    if lowered.startswith("mysql://"):
        return MySQLAdapter(candidate, audit_sink=audit_sink)
    if lowered.startswith(("postgres://", "postgresql://")):
        return PostgresAdapter(candidate, audit_sink=audit_sink)
    if lowered.startswith(("file://", "sqlite://")) or lowered.endswith((".db", ".sqlite")):
        return SQLiteAdapter(candidate, audit_sink=audit_sink)
    if lowered.startswith(("mssql://", "sqlserver://")):
        return SqlServerAdapter(candidate, audit_sink=audit_sink)
    if lowered.startswith("oracle://"):
        return OracleAdapter(candidate, audit_sink=audit_sink)
    raise UnsupportedProtocolError(f"Unsupported database protocol. Supported: {SUPPORTED_PROTOCOLS}")
