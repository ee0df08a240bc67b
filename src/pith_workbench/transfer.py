"""Export tables as CSV or a SQL dump, and import them back."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

import duckdb
import structlog

from pith_workbench import metrics
from pith_workbench.database import ConnectionManager
from pith_workbench.errors import QueryExecutionError, TableNotFoundError, UnsupportedFormatError
from pith_workbench.ingestion import IngestionResult, IngestionService, UploadedFile
from pith_workbench.query import quote_identifier, quote_literal
from pith_workbench.schema import SchemaIntrospector

logger = structlog.get_logger()


@dataclass
class CsvExport:
    table: str
    content: str
    row_count: int

    @property
    def filename(self) -> str:
        return f"{self.table}_export.csv"


@dataclass
class ImportReport:
    executed: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


def csv_field(value: Any) -> str:
    """Strings are always quoted with doubled quotes; NULL is an empty field."""
    if value is None:
        return ""
    if isinstance(value, str):
        return '"' + value.replace('"', '""') + '"'
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def csv_header_field(name: str) -> str:
    """Column names are quoted only when they contain a delimiter, quote or line break."""
    if any(char in name for char in ',"\r\n'):
        return '"' + name.replace('"', '""') + '"'
    return name


def sql_value(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return "'NaN'::DOUBLE"
        return "'Infinity'::DOUBLE" if value > 0 else "'-Infinity'::DOUBLE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return quote_literal(str(value))


def split_statements(content: str) -> list[str]:
    """Split a SQL script on ';' dropping empty and comment-only chunks."""
    statements = []
    for chunk in content.split(";"):
        lines = [line for line in chunk.strip().splitlines() if not line.strip().startswith("--")]
        statement = "\n".join(lines).strip()
        if statement:
            statements.append(statement)
    return statements


def _select_all(conn: duckdb.DuckDBPyConnection, table: str) -> tuple[list[str], list[tuple]]:
    relation = conn.sql(f"SELECT * FROM {quote_identifier(table)}")
    return list(relation.columns), relation.fetchall()


class DataTransferService:
    """Moves table data in and out of the workbench database."""

    def __init__(
        self,
        manager: ConnectionManager,
        introspector: SchemaIntrospector,
        ingestion: IngestionService,
    ):
        self.manager = manager
        self.introspector = introspector
        self.ingestion = ingestion

    async def _read_table(self, table: str) -> tuple[list[str], list[tuple]]:
        # Raw values: exported integers keep their exact digits
        sql = f"SELECT * FROM {quote_identifier(table)}"
        try:
            return await self.manager.run(lambda conn: _select_all(conn, table))
        except duckdb.Error as e:
            raise QueryExecutionError(str(e), sql=sql) from e

    async def _require_table(self, table: str) -> None:
        if table not in await self.introspector.list_tables():
            raise TableNotFoundError(f"Table {table} does not exist", details={"table": table})

    async def export_csv(self, table: str) -> CsvExport | None:
        """CSV for one table, or None when it has no rows."""
        await self._require_table(table)
        columns, rows = await self._read_table(table)
        if not rows:
            logger.info("export_skipped_empty_table", table=table, format="csv")
            return None

        lines = [",".join(csv_header_field(column) for column in columns)]
        lines.extend(",".join(csv_field(value) for value in row) for row in rows)
        metrics.EXPORT_OPERATIONS_TOTAL.labels(format="csv").inc()
        logger.info("export_complete", table=table, format="csv", row_count=len(rows))
        return CsvExport(table=table, content="\n".join(lines), row_count=len(rows))

    async def export_all_csv(self) -> list[CsvExport]:
        exports = []
        for table in await self.introspector.list_tables():
            export = await self.export_csv(table)
            if export is not None:
                exports.append(export)
        return exports

    async def export_sql_dump(self) -> str:
        """SQL script recreating every non-empty table."""
        dump = "-- Pith Analytics SQL Export\n"
        dump += f"-- Generated: {datetime.now(timezone.utc).isoformat()}\n\n"

        tables = await self.introspector.list_tables()
        exported = 0
        for table in tables:
            columns, rows = await self._read_table(table)
            if not rows:
                continue

            quoted = quote_identifier(table)
            schema = await self.introspector.describe(table)
            definition = ", ".join(
                f"{quote_identifier(name)} {info.type}" for name, info in schema.items()
            )
            dump += f"-- Table: {table}\n"
            dump += f"DROP TABLE IF EXISTS {quoted};\n"
            dump += f"CREATE TABLE {quoted} ({definition});\n\n"
            for row in rows:
                values = ", ".join(sql_value(value) for value in row)
                dump += f"INSERT INTO {quoted} VALUES ({values});\n"
            dump += "\n"
            exported += 1

        metrics.EXPORT_OPERATIONS_TOTAL.labels(format="sql").inc()
        logger.info("export_complete", format="sql", table_count=exported)
        return dump

    async def import_sql(self, content: str) -> ImportReport:
        """Execute each statement; failures are logged and skipped."""
        report = ImportReport()
        for statement in split_statements(content):
            try:
                await self.manager.run(lambda conn, sql=statement: conn.execute(sql))
            except duckdb.Error as e:
                report.failed += 1
                report.errors.append({"statement": statement[:100], "error": str(e)})
                metrics.IMPORT_STATEMENTS_TOTAL.labels(status="error").inc()
                logger.warning("import_statement_failed", statement=statement[:100], error=str(e))
                continue
            report.executed += 1
            metrics.IMPORT_STATEMENTS_TOTAL.labels(status="success").inc()

        logger.info("import_complete", format="sql", executed=report.executed, failed=report.failed)
        return report

    async def import_csv(self, file: UploadedFile) -> IngestionResult:
        if Path(file.name).suffix.lower() != ".csv":
            raise UnsupportedFormatError(
                "Only .csv files can be imported as CSV.", details={"file_name": file.name}
            )
        return await self.ingestion.ingest(file)
