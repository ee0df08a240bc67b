"""Typed errors raised by the workbench core.

Every error keeps the original diagnostic message from DuckDB or the
inference runtime so that SQL authors can see the failing clause.
"""

from typing import Any


class WorkbenchError(Exception):
    """Base class for all workbench errors."""

    error_code = "workbench_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class EngineInitError(WorkbenchError):
    """The embedded database failed to start."""

    error_code = "engine_init_failed"


class NotInitializedError(WorkbenchError):
    """An accessor was used before the engine was initialized."""

    error_code = "engine_not_initialized"


class UnsupportedFormatError(WorkbenchError):
    """The uploaded file has an extension no decoder handles."""

    error_code = "unsupported_format"


class IngestionError(WorkbenchError):
    """Decoding a file or creating its table failed."""

    error_code = "ingestion_failed"


class QueryExecutionError(WorkbenchError):
    """A SQL statement failed. Carries the offending SQL text."""

    error_code = "query_failed"

    def __init__(self, message: str, sql: str, details: dict[str, Any] | None = None):
        self.sql = sql
        details = {"sql": sql, **(details or {})}
        super().__init__(message, details)


class QueryTimeoutError(QueryExecutionError):
    """A query exceeded the configured timeout and was interrupted."""

    error_code = "query_timeout"


class UnsupportedPlatformError(WorkbenchError):
    """The local inference runtime is not available on this host."""

    error_code = "unsupported_platform"


class EngineNotInitializedError(WorkbenchError):
    """Generation was requested before a model finished loading."""

    error_code = "model_not_loaded"


class ModelLoadError(WorkbenchError):
    """The inference runtime failed to load a model."""

    error_code = "model_load_failed"


class UnknownModelError(WorkbenchError):
    """A model id that is not part of the catalog was requested."""

    error_code = "unknown_model"


class ChartConfigError(WorkbenchError):
    """A chart configuration failed validation right before plotting."""

    error_code = "invalid_chart_config"


class GenerationError(WorkbenchError):
    """The inference runtime failed while streaming a response."""

    error_code = "generation_failed"


class TableNotFoundError(WorkbenchError):
    """The named table does not exist in the database."""

    error_code = "table_not_found"
