from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

CANONICAL_PLACEHOLDER = "?"


@dataclass(frozen=True)
class TranslatedQuery:
    sql: str
    params: Optional[Union[Tuple[Any, ...], Dict[str, Any]]]


@dataclass(frozen=True)
class SQLDialect:
    engine: str
    paramstyle: str
    named_marker: str = "@p{index}"
    caller_placeholder: str = CANONICAL_PLACEHOLDER

    def top_n_candidates(self, table_name: str, n: int) -> List[str]:
        # Ordered fallback: ANSI-ish LIMIT, then SQL Server TOP, then Oracle ROWNUM.
        return [
            f"SELECT * FROM {table_name} LIMIT {int(n)}",
            f"SELECT TOP {int(n)} * FROM {table_name}",
            f"SELECT * FROM {table_name} WHERE ROWNUM <= {int(n)}",
        ]


def get_sql_dialect(db_engine: str) -> SQLDialect:
    engine = (db_engine or "").strip().lower()
    if engine in {"postgres", "postgresql"}:
        return SQLDialect(engine="postgres", paramstyle="dollar", caller_placeholder="$1")
    if engine == "sqlite":
        return SQLDialect(engine="sqlite", paramstyle="qmark")
    if engine == "mysql":
        return SQLDialect(engine="mysql", paramstyle="qmark")
    if engine in {"mssql", "sqlserver"}:
        # pymssql binds pyformat names
        return SQLDialect(engine="mssql", paramstyle="named", named_marker="%(p{index})s", caller_placeholder="@p0")
    if engine == "oracle":
        return SQLDialect(engine="oracle", paramstyle="numeric", caller_placeholder=":0")
    raise ValueError(f"Unknown SQL dialect: {db_engine}")


def translate_placeholders(dialect: SQLDialect, sql: str, params: Optional[Sequence[Any]] = None) -> TranslatedQuery:
    """Rewrite canonical ``?`` placeholders into the dialect's bind syntax.

    Every ``?`` counts, including ones inside string literals.
    """
    values = tuple(params or ())
    if dialect.paramstyle in {"qmark", "dollar"}:
        return TranslatedQuery(sql=sql, params=values)

    parts = sql.split(CANONICAL_PLACEHOLDER)
    if dialect.paramstyle == "numeric":
        rendered = parts[0] + "".join(f":{index}{part}" for index, part in enumerate(parts[1:]))
        return TranslatedQuery(sql=rendered, params=values)

    if dialect.paramstyle == "named":
        if not values or len(parts) - 1 != len(values):
            # left for the server to reject
            return TranslatedQuery(sql=sql, params=None)
        escape_percent = dialect.named_marker.startswith("%(")
        if escape_percent:
            parts = [part.replace("%", "%%") for part in parts]
        bindings: Dict[str, Any] = {}
        rendered = parts[0]
        for index, part in enumerate(parts[1:]):
            bindings[f"p{index}"] = values[index]
            rendered += dialect.named_marker.format(index=index) + part
        return TranslatedQuery(sql=rendered, params=bindings)

    raise ValueError(f"Unsupported paramstyle: {dialect.paramstyle}")
