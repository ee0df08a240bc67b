"""Database connector for the visualization coordinator.

The coordinator turns chart specs into SQL and indexes result data by
column. `VisualizationConnector.query` runs through the query normalizer and
wraps the scrubbed rows in a `ColumnarTable`, which offers both row and
column views over the same values.
"""

from collections.abc import Iterator, Mapping
from typing import Any

import structlog

from pith_workbench.query import QueryNormalizer, QueryResult

logger = structlog.get_logger()


class ColumnarTable:
    """Normalized query rows with a column-oriented view."""

    def __init__(self, rows: list[dict[str, Any]], columns: list[str]):
        self.rows = rows
        self.columns = columns

    @classmethod
    def from_result(cls, result: QueryResult) -> "ColumnarTable":
        return cls(rows=result.rows, columns=result.columns)

    @property
    def num_rows(self) -> int:
        return len(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)

    def column(self, name: str) -> list[Any]:
        if name not in self.columns:
            raise KeyError(name)
        return [row.get(name) for row in self.rows]

    def to_columns(self) -> dict[str, list[Any]]:
        """Map each column name to its values across all rows, in row order."""
        return {name: [row.get(name) for row in self.rows] for name in self.columns}

    def to_dict(self) -> dict[str, Any]:
        return {"columns": self.columns, "rows": self.rows, "num_rows": self.num_rows}


class VisualizationConnector:
    """The coordinator's only database connector: `query(query_like)`."""

    def __init__(self, normalizer: QueryNormalizer):
        self.normalizer = normalizer

    async def query(self, query_like: Any) -> ColumnarTable:
        result = await self.normalizer.run(query_like, source="visualization")
        query_type = query_like.get("type") if isinstance(query_like, Mapping) else None
        logger.debug("visualization_query", query_type=query_type, row_count=result.row_count)
        if query_type == "exec":
            # exec requests only need the side effect
            return ColumnarTable(rows=[], columns=[])
        return ColumnarTable.from_result(result)
