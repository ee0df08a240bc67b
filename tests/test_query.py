"""Tests for query normalization."""

import asyncio
import json
from decimal import Decimal

import pytest

from pith_workbench.errors import QueryExecutionError, QueryTimeoutError
from pith_workbench.query import (
    QueryNormalizer,
    QueryResult,
    quote_identifier,
    quote_literal,
    resolve_sql,
    scrub_value,
)


class SqlBuilder:
    """Query-builder object rendering itself through __str__."""

    def __init__(self, sql):
        self._sql = sql

    def __str__(self):
        return self._sql


class SqlHolder:
    """Object without a custom __str__ that carries its SQL as an attribute."""

    def __init__(self, sql):
        self.sql = sql


class TestResolveSql:
    def test_string(self):
        assert resolve_sql("  SELECT 1  ") == "SELECT 1"

    def test_builder_object(self):
        assert resolve_sql(SqlBuilder("SELECT 2")) == "SELECT 2"

    def test_sql_attribute(self):
        assert resolve_sql(SqlHolder("SELECT 3")) == "SELECT 3"

    def test_mapping(self):
        assert resolve_sql({"type": "json", "sql": "SELECT 4"}) == "SELECT 4"

    @pytest.mark.parametrize("query", [None, "", "   ", object(), {"type": "json"}])
    def test_nothing_to_execute(self, query):
        assert resolve_sql(query) is None


class TestScrubValue:
    def test_wide_integer_column_becomes_float(self):
        assert scrub_value(2**53 + 1, "BIGINT") == float(2**53 + 1)
        assert isinstance(scrub_value(5, "HUGEINT"), float)

    def test_narrow_integer_column_stays_int(self):
        value = scrub_value(5, "INTEGER")
        assert value == 5
        assert isinstance(value, int)

    def test_integral_decimal_becomes_float(self):
        assert scrub_value(Decimal("42")) == 42.0

    def test_fractional_decimal_becomes_float(self):
        value = scrub_value(Decimal("1.5"))
        assert value == 1.5
        assert isinstance(value, float)

    @pytest.mark.parametrize("value", [None, True, "123", 1.25])
    def test_passthrough(self, value):
        assert scrub_value(value, "BIGINT") == value


class TestQuoting:
    def test_quote_identifier_doubles_quotes(self):
        assert quote_identifier('we"ird') == '"we""ird"'

    def test_quote_literal_doubles_quotes(self):
        assert quote_literal("it's") == "'it''s'"


class TestQueryNormalizer:
    """Tests for QueryNormalizer.run against a live engine."""

    def test_bigint_is_json_safe(self, context):
        async def scenario():
            await context.start()
            return await context.normalizer.run(f"SELECT {2**53 + 1}::BIGINT AS big, 7::INTEGER AS small")

        result = asyncio.run(scenario())

        row = result.rows[0]
        assert isinstance(row["big"], float)
        assert isinstance(row["small"], int)
        assert result.columns == ["big", "small"]
        json.dumps(result.rows)

    def test_hugeint_aggregate_is_float(self, context):
        async def scenario():
            await context.start()
            return await context.normalizer.run(
                "SELECT count(*) AS n, sum(i) AS total FROM range(10) t(i)"
            )

        row = asyncio.run(scenario()).rows[0]
        assert row == {"n": 10.0, "total": 45.0}
        assert all(isinstance(value, float) for value in row.values())

    def test_decimal_literals_are_json_safe(self, context):
        async def scenario():
            await context.start()
            return await context.normalizer.run(
                "SELECT 1.5 AS x, 2.0 AS y, sum(d) AS total FROM (VALUES (1.25::DECIMAL(10, 2))) t(d)"
            )

        row = asyncio.run(scenario()).rows[0]
        assert row == {"x": 1.5, "y": 2.0, "total": 1.25}
        assert all(isinstance(value, float) for value in row.values())
        json.dumps(row)

    def test_empty_result_has_no_columns(self, context):
        async def scenario():
            await context.start()
            await context.normalizer.run("CREATE TABLE t (i INTEGER)")
            return await context.normalizer.run("SELECT * FROM t")

        result = asyncio.run(scenario())

        assert result.rows == []
        assert result.columns == []
        assert result.row_count == 0

    def test_statement_without_result_set(self, context):
        async def scenario():
            await context.start()
            return await context.normalizer.run("CREATE TABLE t (i INTEGER)")

        assert asyncio.run(scenario()) == QueryResult()

    def test_non_sql_query_returns_empty_result(self, context):
        async def scenario():
            await context.start()
            return await context.normalizer.run(object())

        assert asyncio.run(scenario()).rows == []

    def test_builder_object_is_executed(self, context):
        async def scenario():
            await context.start()
            return await context.normalizer.run(SqlBuilder("SELECT 'a' AS letter"))

        assert asyncio.run(scenario()).rows == [{"letter": "a"}]

    def test_error_carries_sql(self, context):
        async def scenario():
            await context.start()
            await context.normalizer.run("SELECT * FROM missing_table")

        with pytest.raises(QueryExecutionError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.sql == "SELECT * FROM missing_table"
        assert "missing_table" in exc_info.value.message

    def test_timeout_interrupts_statement(self, context):
        normalizer = QueryNormalizer(context.manager, timeout=0.2)

        async def scenario():
            await context.start()
            await normalizer.run(
                "SELECT sum(a.range * b.range) FROM range(100000000) a, range(100000000) b"
            )

        with pytest.raises(QueryTimeoutError) as exc_info:
            asyncio.run(scenario())
        assert isinstance(exc_info.value, QueryExecutionError)

    def test_connection_usable_after_timeout(self, context):
        normalizer = QueryNormalizer(context.manager, timeout=0.2)

        async def scenario():
            await context.start()
            with pytest.raises(QueryTimeoutError):
                await normalizer.run(
                    "SELECT sum(a.range * b.range) FROM range(100000000) a, range(100000000) b"
                )
            return await context.normalizer.run("SELECT 1 AS one")

        assert asyncio.run(scenario()).rows == [{"one": 1}]
