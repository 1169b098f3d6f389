from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from adapters.base import (
    ColumnInfo,
    DatabaseAdapter,
    DriverError,
    TableInfo,
    TableNotFoundError,
    WriteResult,
    normalize_rows,
    validate_table_name,
)
from adapters.sql_renderer import get_sql_dialect
from utils.audit import AuditSink

logger = logging.getLogger(__name__)

POOL_MAX_SIZE = 10
CONNECT_TIMEOUT_S = 30.0


def _parse_status(statusmessage: Optional[str]) -> Dict[str, Any]:
    # "INSERT 0 1" -> command INSERT, oid 0; "UPDATE 3" -> command UPDATE
    if not statusmessage:
        return {"command": None, "oid": None}
    parts = statusmessage.split()
    oid = int(parts[1]) if parts[0] == "INSERT" and len(parts) == 3 else None
    return {"command": parts[0], "oid": oid}


class PostgresAdapter(DatabaseAdapter):
    """PostgreSQL through a psycopg pool.

    Queries are sent with PostgreSQL's own ``$1, $2`` placeholders; ``?`` is
    not rewritten for this dialect.
    """

    engine = "postgres"

    def __init__(self, url: str, audit_sink: Optional[AuditSink] = None):
        super().__init__(url, audit_sink=audit_sink)
        self.dialect = get_sql_dialect(self.engine)

    def _open_handle(self) -> ConnectionPool:
        pool = ConnectionPool(
            conninfo=self.url,
            min_size=1,
            max_size=POOL_MAX_SIZE,
            kwargs={"autocommit": True},
            open=False,
        )
        try:
            pool.open(wait=True, timeout=CONNECT_TIMEOUT_S)
            with pool.connection() as conn:
                conn.execute("SELECT 1")
        except Exception:
            pool.close()
            raise
        return pool

    def _close_handle(self, handle: ConnectionPool) -> None:
        handle.close()

    def _run(self, sql: str, params: Optional[Sequence[Any]], fetch: bool) -> Any:
        pool = self._require_handle()
        try:
            with pool.connection() as conn:
                with psycopg.RawCursor(conn, row_factory=dict_row) as cur:
                    cur.execute(sql, list(params) if params else None)
                    rows = normalize_rows(cur.fetchall()) if cur.description else []
                    if fetch:
                        return rows
                    return WriteResult(
                        rows_affected=max(cur.rowcount, 0),
                        rows=rows or None,
                        extra=_parse_status(cur.statusmessage),
                    )
        except psycopg.Error as exc:
            raise DriverError(self.engine, exc) from exc

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        return self._run(sql, params, fetch=True)

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> WriteResult:
        return self._run(sql, params, fetch=False)

    def list_tables(self) -> List[str]:
        rows = self.query(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """
        )
        return [row["table_name"] for row in rows]

    def describe_table(self, table_name: str) -> TableInfo:
        validate_table_name(table_name)
        rows = self.query(
            """
            SELECT
                c.column_name,
                c.data_type,
                c.is_nullable,
                c.column_default,
                CASE WHEN pk.column_name IS NOT NULL THEN 'PRI' END AS column_key
            FROM information_schema.columns c
            LEFT JOIN (
                SELECT kcu.table_name, kcu.column_name
                FROM information_schema.table_constraints tc
                JOIN information_schema.key_column_usage kcu
                  ON tc.constraint_name = kcu.constraint_name
                 AND tc.table_schema = kcu.table_schema
                WHERE tc.table_schema = 'public'
                  AND tc.constraint_type = 'PRIMARY KEY'
            ) pk
              ON pk.table_name = c.table_name
             AND pk.column_name = c.column_name
            WHERE c.table_schema = 'public'
              AND c.table_name = $1
            ORDER BY c.ordinal_position
            """,
            [table_name],
        )
        if not rows:
            raise TableNotFoundError(table_name)

        columns = [
            ColumnInfo(
                name=row["column_name"],
                type=row["data_type"],
                nullable=row["is_nullable"] == "YES",
                key=row["column_key"],
                default=row["column_default"],
            )
            for row in rows
        ]
        return TableInfo(name=table_name, columns=columns)

    def get_table_ddl(self, table_name: str) -> Optional[str]:
        # PostgreSQL has no built-in CREATE TABLE renderer short of pg_dump.
        return None
