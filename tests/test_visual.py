"""Tests for the visualization coordinator connector."""

import asyncio

import pytest

from pith_workbench.visual import ColumnarTable


class TestColumnarTable:
    def setup_method(self):
        self.table = ColumnarTable(
            rows=[{"a": 1, "b": "x"}, {"a": 2, "b": "y"}],
            columns=["a", "b"],
        )

    def test_row_view(self):
        assert len(self.table) == 2
        assert self.table.num_rows == 2
        assert list(self.table) == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]

    def test_column_view(self):
        assert self.table.column("b") == ["x", "y"]
        assert self.table.to_columns() == {"a": [1, 2], "b": ["x", "y"]}

    def test_unknown_column(self):
        with pytest.raises(KeyError):
            self.table.column("c")

    def test_to_dict(self):
        assert self.table.to_dict() == {
            "columns": ["a", "b"],
            "rows": [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}],
            "num_rows": 2,
        }


class TestVisualizationConnector:
    def test_query_string(self, context):
        async def scenario():
            await context.start()
            return await context.connector.query(
                "SELECT i, i * 2 AS doubled FROM range(3) t(i) ORDER BY i"
            )

        table = asyncio.run(scenario())

        assert table.columns == ["i", "doubled"]
        # range() yields BIGINT, scrubbed to float
        assert table.column("i") == [0.0, 1.0, 2.0]

    def test_query_object(self, context):
        async def scenario():
            await context.start()
            return await context.connector.query({"type": "json", "sql": "SELECT 'a' AS letter"})

        assert asyncio.run(scenario()).rows == [{"letter": "a"}]

    def test_exec_returns_empty_table(self, context):
        async def scenario():
            await context.start()
            table = await context.connector.query({"type": "exec", "sql": "CREATE TABLE t AS SELECT 1 AS x"})
            check = await context.connector.query("SELECT x FROM t")
            return table, check

        table, check = asyncio.run(scenario())

        assert table.num_rows == 0
        assert table.columns == []
        assert check.rows == [{"x": 1}]
