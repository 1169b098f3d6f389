from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Sequence

from adapters.base import (
    ColumnInfo,
    DatabaseAdapter,
    DriverError,
    InvalidNameError,
    TableInfo,
    TableNotFoundError,
    WriteResult,
    normalize_rows,
    validate_table_name,
)
from adapters.sql_renderer import get_sql_dialect, translate_placeholders
from adapters.target import sqlite_path
from utils.audit import AuditSink

logger = logging.getLogger(__name__)


class SQLiteAdapter(DatabaseAdapter):
    engine = "sqlite"

    def __init__(self, url: str, audit_sink: Optional[AuditSink] = None):
        super().__init__(url, audit_sink=audit_sink)
        self.db_path = sqlite_path(url)
        self.dialect = get_sql_dialect(self.engine)

    def _open_handle(self) -> sqlite3.Connection:
        # The dispatcher serializes calls, but FastAPI runs them on worker threads.
        conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            conn.close()
            raise
        logger.info("SQLite database opened at %s", self.db_path)
        return conn

    def _close_handle(self, handle: sqlite3.Connection) -> None:
        handle.close()

    def _run(self, sql: str, params: Optional[Sequence[Any]]) -> sqlite3.Cursor:
        conn = self._require_handle()
        translated = translate_placeholders(self.dialect, sql, params)
        try:
            return conn.execute(translated.sql, translated.params)
        except sqlite3.Error as exc:
            raise DriverError(self.engine, exc) from exc

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        cur = self._run(sql, params)
        try:
            return normalize_rows(cur.fetchall())
        except sqlite3.Error as exc:
            raise DriverError(self.engine, exc) from exc
        finally:
            cur.close()

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> WriteResult:
        cur = self._run(sql, params)
        try:
            returned = normalize_rows(cur.fetchall()) if cur.description else None
            return WriteResult(
                rows_affected=max(cur.rowcount, 0),
                last_insert_id=cur.lastrowid,
                rows=returned,
                extra={"changes": max(cur.rowcount, 0)},
            )
        except sqlite3.Error as exc:
            raise DriverError(self.engine, exc) from exc
        finally:
            cur.close()

    def list_tables(self) -> List[str]:
        rows = self.query(
            """
            SELECT name
            FROM sqlite_master
            WHERE type = 'table'
              AND name NOT LIKE 'sqlite_%'
            ORDER BY name
            """
        )
        return [row["name"] for row in rows]

    def describe_table(self, table_name: str) -> TableInfo:
        validate_table_name(table_name)
        rows = self.query(f'PRAGMA table_info("{table_name}")')
        if not rows:
            raise TableNotFoundError(table_name)

        columns = [
            ColumnInfo(
                name=row["name"],
                type=str(row["type"] or ""),
                nullable=row["notnull"] == 0,
                key="PRI" if row["pk"] else None,
                default=row["dflt_value"],
            )
            for row in rows
        ]
        return TableInfo(name=table_name, columns=columns)

    def get_table_ddl(self, table_name: str) -> Optional[str]:
        try:
            validate_table_name(table_name)
            rows = self.query("SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", [table_name])
        except (InvalidNameError, DriverError) as exc:
            logger.debug("DDL lookup failed for %s: %s", table_name, exc)
            return None
        if not rows:
            return None
        return rows[0]["sql"]
