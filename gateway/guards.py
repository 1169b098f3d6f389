import re


class UnsafeSQLError(ValueError):
    pass


# Only checked inside CTE-led statements: a data-modifying CTE can hide DML.
_CTE_DENYLIST = (
    "insert",
    "update",
    "delete",
    "merge",
    "drop",
    "alter",
    "create",
    "truncate",
    "grant",
    "revoke",
)


def _normalize_sql(sql: str) -> str:
    return re.sub(r"\s+", " ", sql.strip()).lower()


def _blank_literals(sql: str) -> str:
    # quoted strings and identifiers may contain ";" or keywords
    sql = re.sub(r"'(?:[^']|'')*'", "''", sql)
    return re.sub(r'"(?:[^"]|"")*"', '""', sql)


def validate_read_sql(sql: str) -> str:
    if not isinstance(sql, str):
        raise UnsafeSQLError("query must be a string")
    candidate = sql.strip()
    if not candidate:
        raise UnsafeSQLError("SQL is empty")

    scanned = _blank_literals(candidate)
    semicolons = scanned.count(";")
    if semicolons > 1:
        raise UnsafeSQLError("Multiple SQL statements are not allowed")
    if semicolons == 1 and not scanned.endswith(";"):
        raise UnsafeSQLError("Semicolon is only allowed at the end of SQL")

    normalized = _normalize_sql(scanned.rstrip(";"))
    if normalized.startswith("select"):
        return candidate.rstrip(";")
    if not normalized.startswith("with "):
        raise UnsafeSQLError("read_query only supports SELECT statements. Use write_query for modifications.")

    for keyword in _CTE_DENYLIST:
        if re.search(rf"\b{keyword}\b", normalized):
            raise UnsafeSQLError(f"Blocked SQL keyword detected: {keyword}")
    return candidate.rstrip(";")
