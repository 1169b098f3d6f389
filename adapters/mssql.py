from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import pymssql

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
from adapters.sql_renderer import get_sql_dialect, translate_placeholders
from adapters.target import parse_target
from utils.audit import AuditSink

logger = logging.getLogger(__name__)


class SqlServerAdapter(DatabaseAdapter):
    engine = "mssql"

    def __init__(self, url: str, audit_sink: Optional[AuditSink] = None):
        super().__init__(url, audit_sink=audit_sink)
        self.target = parse_target(url, self.engine, default_port=1433)
        self.dialect = get_sql_dialect(self.engine)

    def _connect_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "server": self.target.host or "localhost",
            "port": str(self.target.port),
            "user": self.target.user,
            "password": self.target.password,
            "autocommit": True,
        }
        if self.target.database:
            kwargs["database"] = self.target.database
        for option in ("tds_version", "charset", "appname"):
            if option in self.target.options:
                kwargs[option] = self.target.options[option]
        return kwargs

    def _open_handle(self) -> Any:
        conn = pymssql.connect(**self._connect_kwargs())
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.fetchone()
            cur.close()
        except pymssql.Error:
            conn.close()
            raise
        return conn

    def _close_handle(self, handle: Any) -> None:
        handle.close()

    def _run(self, sql: str, params: Optional[Sequence[Any]], fetch: bool) -> Any:
        conn = self._require_handle()
        translated = translate_placeholders(self.dialect, sql, params)
        try:
            cur = conn.cursor(as_dict=True)
            try:
                if translated.params:
                    cur.execute(translated.sql, translated.params)
                else:
                    cur.execute(translated.sql)
                rows = normalize_rows(cur.fetchall()) if cur.description else []
                if fetch:
                    return rows
                return WriteResult(rows_affected=max(cur.rowcount, 0), last_insert_id=cur.lastrowid, rows=rows or None)
            finally:
                cur.close()
        except pymssql.Error as exc:
            raise DriverError(self.engine, exc) from exc

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        return self._run(sql, params, fetch=True)

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> WriteResult:
        return self._run(sql, params, fetch=False)

    def list_tables(self) -> List[str]:
        rows = self.query(
            """
            SELECT TABLE_NAME
            FROM INFORMATION_SCHEMA.TABLES
            WHERE TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
            """
        )
        return [row["TABLE_NAME"] for row in rows]

    def describe_table(self, table_name: str) -> TableInfo:
        validate_table_name(table_name)
        rows = self.query(
            """
            SELECT
                COLUMN_NAME,
                DATA_TYPE,
                IS_NULLABLE,
                COLUMN_DEFAULT
            FROM INFORMATION_SCHEMA.COLUMNS
            WHERE TABLE_NAME = ?
            ORDER BY ORDINAL_POSITION
            """,
            [table_name],
        )
        if not rows:
            raise TableNotFoundError(table_name)

        columns = [
            ColumnInfo(
                name=row["COLUMN_NAME"],
                type=row["DATA_TYPE"],
                nullable=row["IS_NULLABLE"] == "YES",
                default=row["COLUMN_DEFAULT"],
            )
            for row in rows
        ]
        return TableInfo(name=table_name, columns=columns)

    def get_table_ddl(self, table_name: str) -> Optional[str]:
        # sp_helptext only covers views/procedures; table DDL is not reconstructed.
        return None
