"""Database adapter layer: one connection contract per SQL dialect."""

from adapters.base import (
    AdapterError,
    ColumnInfo,
    ConnectionError,
    DatabaseAdapter,
    DriverError,
    InvalidNameError,
    NotConnectedError,
    TableInfo,
    TableNotFoundError,
    UnsupportedProtocolError,
    WriteResult,
)
from adapters.factory import create_adapter

__all__ = [
    "AdapterError",
    "ColumnInfo",
    "ConnectionError",
    "DatabaseAdapter",
    "DriverError",
    "InvalidNameError",
    "NotConnectedError",
    "TableInfo",
    "TableNotFoundError",
    "UnsupportedProtocolError",
    "WriteResult",
    "create_adapter",
]
