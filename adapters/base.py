from __future__ import annotations

import datetime as dt
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar
from uuid import UUID

from utils.audit import AuditSink, NullAuditSink

logger = logging.getLogger(__name__)

T = TypeVar("T")

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


class AdapterError(RuntimeError):
    pass


class NotConnectedError(AdapterError):
    def __init__(self, engine: str):
        super().__init__(f"{engine} database not connected")
        self.engine = engine


class ConnectionError(AdapterError):
    def __init__(self, engine: str, message: str):
        super().__init__(f"Failed to connect to {engine} database: {message}")
        self.engine = engine


class InvalidNameError(AdapterError):
    pass


class TableNotFoundError(AdapterError):
    def __init__(self, table_name: str):
        super().__init__(f"Table {table_name} not found")
        self.table_name = table_name


class UnsupportedProtocolError(AdapterError):
    pass


class DriverError(AdapterError):
    """Database-side failure, message kept exactly as the driver reported it."""

    def __init__(self, engine: str, original: BaseException):
        super().__init__(str(original))
        self.engine = engine
        self.original = original


@dataclass
class ColumnInfo:
    name: str
    type: str
    nullable: bool
    key: Optional[str] = None
    default: Optional[str] = None
    extra: Optional[str] = None


@dataclass
class TableInfo:
    name: str
    columns: List[ColumnInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WriteResult:
    rows_affected: int
    last_insert_id: Optional[Any] = None
    rows: Optional[List[Dict[str, Any]]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"rows_affected": self.rows_affected}
        if self.last_insert_id is not None:
            payload["last_insert_id"] = self.last_insert_id
        if self.rows is not None:
            payload["rows"] = self.rows
        payload.update(self.extra)
        return payload


def validate_table_name(table_name: str) -> str:
    if not isinstance(table_name, str) or not TABLE_NAME_PATTERN.match(table_name):
        raise InvalidNameError(f"Invalid table name: {table_name!r}")
    return table_name


def normalize_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str, bytes)):
        return value
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, UUID):
        return str(value)
    if hasattr(value, "read"):
        # LOB locators
        return normalize_value(value.read())
    return str(value)


def normalize_rows(rows: Sequence[Any]) -> List[Dict[str, Any]]:
    return [{str(key): normalize_value(val) for key, val in dict(row).items()} for row in rows]


def first_nonempty(candidates: Sequence[Callable[[], List[T]]]) -> List[T]:
    """Run candidates in order and return the first non-empty result (or [])."""
    result: List[T] = []
    for candidate in candidates:
        result = candidate()
        if result:
            return result
    return result


def first_successful(candidates: Sequence[Callable[[], T]]) -> T:
    """Run candidates in order; the first one that does not raise wins.

    When every candidate fails, the last failure is re-raised.
    """
    if not candidates:
        raise ValueError("first_successful requires at least one candidate")
    last_error: Optional[Exception] = None
    for candidate in candidates:
        try:
            return candidate()
        except Exception as exc:
            last_error = exc
    raise last_error


class DatabaseAdapter(ABC):
    engine: str = "unknown"

    def __init__(self, url: str, audit_sink: Optional[AuditSink] = None):
        self.url = url
        self.audit_sink = audit_sink or NullAuditSink()
        self._handle: Any = None

    @property
    def is_connected(self) -> bool:
        return self._handle is not None

    def connect(self) -> None:
        if self._handle is not None:
            return
        started = time.perf_counter()
        try:
            self._handle = self._open_handle()
        except Exception as exc:
            self._handle = None
            message = str(exc)
            logger.error("Failed to connect to %s database: %s", self.engine, message)
            self._audit(
                duration_ms=_elapsed_ms(started),
                success=False,
                error=f"Failed to connect to {self.engine} database: {message}",
            )
            raise ConnectionError(self.engine, message) from exc
        logger.info("Successfully connected to %s database", self.engine)
        self._audit(
            duration_ms=_elapsed_ms(started),
            success=True,
            result_summary=f"Connected to {self.engine} database",
        )

    def _audit(self, **fields: Any) -> None:
        try:
            self.audit_sink.record("system", **fields)
        except Exception as exc:
            logger.warning("Audit write failed for %s lifecycle event: %s", self.engine, exc)

    def close(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            self._close_handle(handle)
        except Exception as exc:
            logger.warning("Error closing %s connection: %s", self.engine, exc)

    def _require_handle(self) -> Any:
        if self._handle is None:
            raise NotConnectedError(self.engine)
        return self._handle

    @abstractmethod
    def _open_handle(self) -> Any:
        """Create the driver handle and verify it is live; raise on failure."""
        raise NotImplementedError

    @abstractmethod
    def _close_handle(self, handle: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> WriteResult:
        raise NotImplementedError

    @abstractmethod
    def list_tables(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def describe_table(self, table_name: str) -> TableInfo:
        raise NotImplementedError

    @abstractmethod
    def get_table_ddl(self, table_name: str) -> Optional[str]:
        raise NotImplementedError


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
