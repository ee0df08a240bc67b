"""File ingestion: turn an uploaded file into a DuckDB table.

Pipeline:
1. DECODER: pick a table function by file extension (fails before any engine call)
2. REGISTER: zero-copy handle registration, falling back to a buffer copy
3. CREATE: CREATE TABLE IF NOT EXISTS <table> AS SELECT * FROM <decoder>('<file>')
4. VERIFY: row count and DESCRIBE of the new table

Re-ingesting a file whose sanitized name matches an existing table leaves the
table untouched (IF NOT EXISTS); drop the table first to reload it.
"""

import asyncio
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import duckdb
import structlog

from pith_workbench import metrics
from pith_workbench.database import ConnectionManager
from pith_workbench.errors import IngestionError, QueryExecutionError, UnsupportedFormatError
from pith_workbench.query import QueryNormalizer, quote_identifier, quote_literal

logger = structlog.get_logger()

# Extension -> DuckDB table function
DECODERS: dict[str, str] = {
    ".csv": "read_csv_auto",
    ".json": "read_json_auto",
    ".parquet": "read_parquet",
}


class UploadedFile(Protocol):
    """Anything with a name and a way to read its bytes."""

    name: str

    def read(self) -> bytes: ...


@dataclass
class LocalFile:
    """A file already on local disk; registered without copying."""

    path: Path
    name: str = ""

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if not self.name:
            self.name = self.path.name

    def read(self) -> bytes:
        return self.path.read_bytes()


@dataclass
class BufferedFile:
    """An in-memory upload (e.g. an HTTP multipart body)."""

    name: str
    data: bytes = field(repr=False)

    def read(self) -> bytes:
        return self.data


@dataclass
class IngestionResult:
    table_name: str
    row_count: int
    columns: list[str]


def sanitize_table_name(filename: str) -> str:
    """
    Derive a table name from a file name.

    Strips the trailing extension, replaces every character outside
    [A-Za-z0-9_] with an underscore, and lowercases the result.
    """
    stem = re.sub(r"\.[^/.]+$", "", filename)
    return re.sub(r"[^A-Za-z0-9_]", "_", stem).lower()


def select_decoder(filename: str) -> str:
    """Return the table function for a file name; extension match ignores case."""
    suffix = Path(filename).suffix.lower()
    decoder = DECODERS.get(suffix)
    if decoder is None:
        raise UnsupportedFormatError(
            "Unsupported file type. Please use CSV, JSON, or Parquet.",
            details={"file_name": filename, "supported": sorted(DECODERS)},
        )
    return decoder


class IngestionService:
    """Creates one table per ingested file."""

    def __init__(self, manager: ConnectionManager, normalizer: QueryNormalizer):
        self.manager = manager
        self.normalizer = normalizer

    async def ingest(self, file: UploadedFile) -> IngestionResult:
        start_time = time.time()
        decoder = select_decoder(file.name)
        file_format = decoder_format(decoder)
        table_name = sanitize_table_name(file.name)

        # Sequencing check: the engine must have been initialized by the caller
        self.manager.get_handle()

        logger.info(
            "ingestion_start",
            file_name=file.name,
            table_name=table_name,
            decoder=decoder,
        )

        file_path = await self._register(file)
        create_sql = (
            f"CREATE TABLE IF NOT EXISTS {quote_identifier(table_name)} AS "
            f"SELECT * FROM {decoder}({quote_literal(str(file_path))})"
        )

        try:
            await self.manager.run(lambda conn: conn.execute(create_sql))
            count_result = await self.normalizer.run(
                f"SELECT count(*) AS count FROM {quote_identifier(table_name)}",
                source="ingestion",
            )
            describe_result = await self.normalizer.run(
                f"DESCRIBE {quote_identifier(table_name)}", source="ingestion"
            )
        except (duckdb.Error, QueryExecutionError) as e:
            message = e.message if isinstance(e, QueryExecutionError) else str(e)
            metrics.INGEST_OPERATIONS_TOTAL.labels(format=file_format, status="error").inc()
            logger.error(
                "ingestion_failed",
                file_name=file.name,
                table_name=table_name,
                error=message,
            )
            raise IngestionError(
                message, details={"file_name": file.name, "table_name": table_name}
            ) from e

        row_count = int(count_result.rows[0]["count"])
        columns = [row["column_name"] for row in describe_result.rows]

        duration = time.time() - start_time
        metrics.INGEST_OPERATIONS_TOTAL.labels(format=file_format, status="success").inc()
        metrics.INGEST_DURATION.labels(format=file_format).observe(duration)
        metrics.INGEST_ROWS_TOTAL.inc(row_count)
        logger.info(
            "ingestion_complete",
            file_name=file.name,
            table_name=table_name,
            row_count=row_count,
            column_count=len(columns),
            duration_ms=int(duration * 1000),
        )

        return IngestionResult(table_name=table_name, row_count=row_count, columns=columns)

    async def _register(self, file: UploadedFile) -> Path:
        """Register the file with the engine, preferring a zero-copy handle."""
        path = getattr(file, "path", None)
        if path is not None:
            try:
                return self.manager.files.register_file_handle(file.name, path)
            except Exception as e:
                logger.warning(
                    "file_handle_registration_failed",
                    file_name=file.name,
                    error=str(e),
                    fallback="buffer_copy",
                )
                metrics.INGEST_BUFFER_FALLBACKS.inc()

        data = await asyncio.to_thread(file.read)
        return await asyncio.to_thread(self.manager.files.register_file_buffer, file.name, data)


def decoder_format(decoder: str) -> str:
    for suffix, name in DECODERS.items():
        if name == decoder:
            return suffix.lstrip(".")
    return "unknown"
