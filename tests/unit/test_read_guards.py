import pytest

from gateway.guards import UnsafeSQLError, validate_read_sql


def test_validate_read_sql_rejects_multiple_statements():
    with pytest.raises(UnsafeSQLError, match="Multiple SQL statements"):
        validate_read_sql("SELECT 1; SELECT 2;")


def test_validate_read_sql_rejects_non_select_statement():
    with pytest.raises(UnsafeSQLError, match="read_query only supports SELECT statements"):
        validate_read_sql("DELETE FROM orders")


def test_validate_read_sql_rejects_write_inside_cte():
    with pytest.raises(UnsafeSQLError, match="Blocked SQL keyword detected: delete"):
        validate_read_sql("WITH gone AS (DELETE FROM orders RETURNING *) SELECT * FROM gone")


def test_validate_read_sql_allows_select_with_keyword_named_columns():
    assert validate_read_sql("  select comment, updated_at from posts; ") == "select comment, updated_at from posts"


def test_validate_read_sql_allows_plain_cte():
    sql = "WITH recent AS (SELECT * FROM orders) SELECT count(*) FROM recent"
    assert validate_read_sql(sql) == sql


def test_validate_read_sql_rejects_empty():
    with pytest.raises(UnsafeSQLError, match="SQL is empty"):
        validate_read_sql("   ")


def test_validate_read_sql_ignores_semicolons_inside_literals():
    sql = "SELECT * FROM notes WHERE body = 'a;b' AND tag <> 'it''s;'"
    assert validate_read_sql(sql) == sql
    assert validate_read_sql(sql + ";") == sql


def test_validate_read_sql_still_rejects_statement_after_literal():
    with pytest.raises(UnsafeSQLError, match="Semicolon is only allowed at the end"):
        validate_read_sql("SELECT 'x;y' FROM t; DROP TABLE t")


def test_validate_read_sql_allows_keywords_in_cte_literals():
    sql = "WITH flagged AS (SELECT * FROM audit WHERE action = 'delete') SELECT count(*) FROM flagged"
    assert validate_read_sql(sql) == sql
