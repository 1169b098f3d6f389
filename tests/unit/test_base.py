import datetime as dt
from decimal import Decimal
from uuid import UUID

import pytest

from adapters import InvalidNameError, NotConnectedError, WriteResult, create_adapter
from adapters.base import first_nonempty, first_successful, normalize_rows, normalize_value, validate_table_name

ALL_URLS = [
    "mysql://u:p@localhost/shop",
    "postgres://u:p@localhost/shop",
    "sqlite:///tmp/never-opened.db",
    "mssql://u:p@localhost/shop",
    "oracle://u:p@localhost:1521/ORCL",
]


@pytest.mark.parametrize("url", ALL_URLS)
@pytest.mark.parametrize("bad_name", ["users;drop", "public.users", "", "naïve", "a b", "t`x"])
def test_describe_rejects_bad_names_before_any_query(url, bad_name):
    # Not connected: any query attempt would raise NotConnectedError instead.
    adapter = create_adapter(url)
    with pytest.raises(InvalidNameError):
        adapter.describe_table(bad_name)


@pytest.mark.parametrize("url", ALL_URLS)
def test_unconnected_adapter_refuses_queries(url):
    adapter = create_adapter(url)
    with pytest.raises(NotConnectedError):
        adapter.query("SELECT 1")


@pytest.mark.parametrize("url", ALL_URLS)
def test_close_without_connect_is_a_no_op(url):
    adapter = create_adapter(url)
    adapter.close()
    adapter.close()
    assert adapter.is_connected is False


def test_validate_table_name_accepts_identifiers():
    assert validate_table_name("Order_Items_2024") == "Order_Items_2024"


def test_normalize_value_canonical_types():
    assert normalize_value(Decimal("3")) == 3
    assert normalize_value(Decimal("2.50")) == 2.5
    assert normalize_value(dt.date(2024, 1, 2)) == "2024-01-02"
    assert normalize_value(dt.datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"
    assert normalize_value(bytearray(b"ab")) == b"ab"
    assert normalize_value(memoryview(b"cd")) == b"cd"
    assert normalize_value(UUID("12345678-1234-5678-1234-567812345678")) == "12345678-1234-5678-1234-567812345678"
    assert normalize_value(True) is True
    assert normalize_value(None) is None


def test_normalize_rows_preserves_column_order():
    rows = normalize_rows([{"b": 1, "a": Decimal("1.5")}])
    assert list(rows[0].keys()) == ["b", "a"]
    assert rows[0]["a"] == 1.5


def test_first_successful_returns_first_that_does_not_raise():
    calls = []

    def failing(label):
        def run():
            calls.append(label)
            raise RuntimeError(label)

        return run

    assert first_successful([failing("limit"), lambda: "top", failing("rownum")]) == "top"
    assert calls == ["limit"]


def test_first_successful_surfaces_last_failure():
    def fail(message):
        def run():
            raise RuntimeError(message)

        return run

    with pytest.raises(RuntimeError, match="third"):
        first_successful([fail("first"), fail("second"), fail("third")])


def test_first_nonempty_stops_at_first_rows():
    attempts = []

    def attempt(name, rows):
        def run():
            attempts.append(name)
            return rows

        return run

    assert first_nonempty([attempt("orders", []), attempt("ORDERS", [{"x": 1}]), attempt("never", [])]) == [{"x": 1}]
    assert attempts == ["orders", "ORDERS"]
    assert first_nonempty([attempt("a", []), attempt("b", [])]) == []


def test_write_result_flattens_extra():
    result = WriteResult(rows_affected=2, extra={"command": "DELETE"})
    assert result.to_dict() == {"rows_affected": 2, "command": "DELETE"}
