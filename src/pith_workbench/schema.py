"""Schema introspection: table listing and per-table column types."""

from dataclasses import dataclass

import structlog

from pith_workbench import metrics
from pith_workbench.query import QueryNormalizer, quote_identifier

logger = structlog.get_logger()

# Substrings of DuckDB type names treated as numeric (advisory, containment match)
NUMERIC_TYPE_TOKENS = ("INTEGER", "BIGINT", "DOUBLE", "FLOAT", "DECIMAL", "HUGEINT", "REAL")


def is_numeric_type(type_name: str) -> bool:
    upper = type_name.upper()
    return any(token in upper for token in NUMERIC_TYPE_TOKENS)


@dataclass(frozen=True)
class ColumnInfo:
    type: str
    is_numeric: bool


# Ordered mapping column name -> ColumnInfo (dicts keep insertion order)
ColumnSchema = dict[str, ColumnInfo]


def numeric_columns(schema: ColumnSchema) -> list[str]:
    return [name for name, info in schema.items() if info.is_numeric]


class SchemaIntrospector:
    """Lists tables and describes their columns through the query normalizer."""

    def __init__(self, normalizer: QueryNormalizer):
        self.normalizer = normalizer

    async def list_tables(self) -> list[str]:
        result = await self.normalizer.run("SHOW TABLES", source="schema")
        tables = [row["name"] for row in result.rows]
        metrics.TABLES_TOTAL.set(len(tables))
        return tables

    async def describe(self, table: str) -> ColumnSchema:
        result = await self.normalizer.run(f"DESCRIBE {quote_identifier(table)}", source="schema")
        schema: ColumnSchema = {}
        for row in result.rows:
            column_type = str(row["column_type"])
            schema[row["column_name"]] = ColumnInfo(
                type=column_type, is_numeric=is_numeric_type(column_type)
            )
        if not schema:
            logger.warning("describe_returned_no_columns", table=table)
        return schema

    async def schema_context(self) -> str:
        """Render every table and its columns as prompt context for the model."""
        tables = await self.list_tables()
        if not tables:
            return "No tables found."

        context = ""
        for table in tables:
            schema = await self.describe(table)
            columns = ", ".join(f"{name} ({info.type})" for name, info in schema.items())
            context += f"Table: {table}\nColumns: {columns}\n\n"
        return context
