"""Query normalization: run SQL and return plain, JSON-safe records.

Accepts either a SQL string or a query-builder object coming from a
visualization coordinator. Results are converted to a list of dicts and every
value read from a 64-bit (or wider) integer column is converted to a float,
so consumers that only understand IEEE doubles never see a wide integer.
Precision above 2**53 is lost consistently; that is the trade-off.
"""

import re
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import duckdb
import structlog

from pith_workbench import metrics
from pith_workbench.database import ConnectionManager
from pith_workbench.errors import QueryExecutionError, QueryTimeoutError

logger = structlog.get_logger()

# DuckDB column types whose values exceed the safe-integer range of a double
BIG_INTEGER_TYPES = frozenset({"BIGINT", "UBIGINT", "HUGEINT", "UHUGEINT"})

_INTEGER_STRING = re.compile(r"^-?\d+$")


@dataclass
class QueryResult:
    """Normalized rows plus the column list derived from the first row."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @classmethod
    def from_rows(cls, rows: list[dict[str, Any]]) -> "QueryResult":
        columns = list(rows[0].keys()) if rows else []
        return cls(rows=rows, columns=columns)


def quote_identifier(name: str) -> str:
    """Quote a SQL identifier for DuckDB."""
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Quote a SQL string literal, doubling single quotes."""
    return "'" + value.replace("'", "''") + "'"


def resolve_sql(query: Any) -> str | None:
    """
    Extract SQL text from a string or a query-builder object.

    Objects are converted with str(); when that only yields the default
    object representation, a `sql` attribute (or mapping key) is used.
    Returns None when there is nothing to execute.
    """
    if query is None:
        return None
    if isinstance(query, str):
        sql = query
    elif isinstance(query, Mapping):
        sql = query.get("sql")
    elif type(query).__str__ is not object.__str__:
        sql = str(query)
    else:
        sql = getattr(query, "sql", None)

    if not isinstance(sql, str):
        return None
    sql = sql.strip()
    return sql or None


def scrub_value(value: Any, column_type: str | None = None) -> Any:
    """Convert wide integers and decimals to float; pass everything else through."""
    if value is None or isinstance(value, (bool, str, float)):
        return value
    if isinstance(value, int):
        if column_type in BIG_INTEGER_TYPES:
            return float(value)
        return value
    # DECIMAL values (including plain numeric literals) lose precision beyond a double
    if isinstance(value, Decimal):
        return float(value)
    # Object-wrapped integers (numpy-style scalars)
    if hasattr(value, "__index__"):
        text = str(value)
        if _INTEGER_STRING.match(text):
            return float(int(text))
    return value


def scrub_rows(
    columns: list[str], column_types: list[str], raw_rows: list[tuple]
) -> list[dict[str, Any]]:
    """Build row dicts and scrub every field of every row."""
    types = [t.upper() for t in column_types]
    return [
        {
            name: scrub_value(value, col_type)
            for name, col_type, value in zip(columns, types, raw_row)
        }
        for raw_row in raw_rows
    ]


def _fetch(conn: duckdb.DuckDBPyConnection, sql: str) -> tuple[list[str], list[str], list[tuple]]:
    relation = conn.sql(sql)
    if relation is None:
        # DDL/DML without a result set
        return [], [], []
    columns = list(relation.columns)
    column_types = [str(t) for t in relation.types]
    return columns, column_types, relation.fetchall()


class QueryNormalizer:
    """Executes SQL on the shared connection and normalizes the result."""

    def __init__(self, manager: ConnectionManager, timeout: float | None = None):
        self.manager = manager
        self.timeout = timeout

    async def run(self, query: Any, source: str = "console") -> QueryResult:
        sql = resolve_sql(query)
        if sql is None:
            logger.debug("query_skipped_not_sql", source=source, query_type=type(query).__name__)
            return QueryResult()

        start_time = time.perf_counter()
        try:
            columns, column_types, raw_rows = await self.manager.run(
                lambda conn: _fetch(conn, sql), timeout=self.timeout
            )
        except TimeoutError as e:
            metrics.QUERY_COUNT.labels(source=source, status="timeout").inc()
            logger.error("query_timeout", source=source, sql=sql, timeout=self.timeout)
            raise QueryTimeoutError(str(e), sql=sql) from e
        except duckdb.Error as e:
            metrics.QUERY_COUNT.labels(source=source, status="error").inc()
            logger.error("query_failed", source=source, sql=sql, error=str(e))
            raise QueryExecutionError(str(e), sql=sql) from e

        duration = time.perf_counter() - start_time
        result = QueryResult.from_rows(scrub_rows(columns, column_types, raw_rows))

        metrics.QUERY_COUNT.labels(source=source, status="success").inc()
        metrics.QUERY_DURATION.labels(source=source).observe(duration)
        metrics.QUERY_ROWS_TOTAL.inc(result.row_count)
        logger.debug(
            "query_complete",
            source=source,
            row_count=result.row_count,
            duration_ms=round(duration * 1000, 2),
        )
        return result
