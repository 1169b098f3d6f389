from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

import mysql.connector
from mysql.connector import errorcode, pooling

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
from adapters.target import parse_target
from utils.audit import AuditSink

logger = logging.getLogger(__name__)

POOL_SIZE = 10


def _text(value: Any) -> Any:
    # DESCRIBE / SHOW columns may come back as bytes depending on the connector build
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return value


class MySQLAdapter(DatabaseAdapter):
    engine = "mysql"

    def __init__(self, url: str, audit_sink: Optional[AuditSink] = None):
        super().__init__(url, audit_sink=audit_sink)
        self.target = parse_target(url, self.engine, default_port=3306)
        self.dialect = get_sql_dialect(self.engine)

    def _pool_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "pool_name": f"mysql_gateway_{uuid4().hex[:8]}",
            "pool_size": POOL_SIZE,
            "host": self.target.host or "localhost",
            "port": self.target.port,
            "user": self.target.user,
            "password": self.target.password or "",
            "autocommit": True,
        }
        if self.target.database:
            params["database"] = self.target.database
        if "charset" in self.target.options:
            params["charset"] = self.target.options["charset"]
        return params

    def _open_handle(self) -> pooling.MySQLConnectionPool:
        pool = pooling.MySQLConnectionPool(**self._pool_params())
        # borrow and hand back one connection so bad credentials fail here
        conn = pool.get_connection()
        conn.close()
        return pool

    def _close_handle(self, handle: pooling.MySQLConnectionPool) -> None:
        # MySQLConnectionPool has no public shutdown
        handle._remove_connections()

    def _run(self, sql: str, params: Optional[Sequence[Any]], fetch: bool) -> Any:
        pool = self._require_handle()
        translated = translate_placeholders(self.dialect, sql, params)
        conn = pool.get_connection()
        try:
            # prepared statements are what bind ``?`` natively
            cur = conn.cursor(prepared=bool(translated.params), dictionary=True)
            try:
                if translated.params:
                    cur.execute(translated.sql, translated.params)
                else:
                    cur.execute(translated.sql)
                if fetch:
                    return normalize_rows(cur.fetchall()) if cur.description else []
                returned = normalize_rows(cur.fetchall()) if cur.description else None
                return WriteResult(
                    rows_affected=max(cur.rowcount, 0),
                    last_insert_id=cur.lastrowid or None,
                    rows=returned,
                )
            finally:
                cur.close()
        finally:
            conn.close()

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        try:
            return self._run(sql, params, fetch=True)
        except mysql.connector.Error as exc:
            raise DriverError(self.engine, exc) from exc

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> WriteResult:
        try:
            return self._run(sql, params, fetch=False)
        except mysql.connector.Error as exc:
            raise DriverError(self.engine, exc) from exc

    def list_tables(self) -> List[str]:
        rows = self.query("SHOW TABLES")
        return [_text(next(iter(row.values()))) for row in rows if row]

    def describe_table(self, table_name: str) -> TableInfo:
        validate_table_name(table_name)
        try:
            rows = self._run(f"DESCRIBE `{table_name}`", None, fetch=True)
        except mysql.connector.Error as exc:
            if exc.errno == errorcode.ER_NO_SUCH_TABLE:
                raise TableNotFoundError(table_name) from exc
            raise DriverError(self.engine, exc) from exc
        if not rows:
            raise TableNotFoundError(table_name)

        columns = [
            ColumnInfo(
                name=_text(row["Field"]),
                type=_text(row["Type"]),
                nullable=_text(row["Null"]) == "YES",
                key=_text(row.get("Key")) or None,
                default=_text(row.get("Default")),
                extra=_text(row.get("Extra")) or None,
            )
            for row in rows
        ]
        return TableInfo(name=table_name, columns=columns)

    def get_table_ddl(self, table_name: str) -> Optional[str]:
        try:
            validate_table_name(table_name)
            rows = self.query(f"SHOW CREATE TABLE `{table_name}`")
        except (InvalidNameError, DriverError) as exc:
            logger.debug("DDL lookup failed for %s: %s", table_name, exc)
            return None
        if not rows:
            return None
        return _text(rows[0].get("Create Table"))
