"""Request and response models for API endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from pith_workbench.charts.validators import ChartConfig


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status: 'healthy' or 'unhealthy'")
    version: str = Field(description="API version")
    engine_initialized: bool = Field(description="Whether the DuckDB engine is running")
    duckdb_version: str = Field(description="Embedded DuckDB version")
    bundle: str | None = Field(default=None, description="Engine bundle: 'memory' or 'persistent'")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error type")
    message: str = Field(description="Error message")
    details: dict | None = Field(default=None, description="Additional error details")


# ============================================
# Table models
# ============================================


class IngestResponse(BaseModel):
    """Table created from an uploaded file."""

    table_name: str = Field(description="Sanitized table name")
    row_count: int = Field(description="Rows in the table")
    columns: list[str] = Field(description="Column names in table order")


class TableListResponse(BaseModel):
    tables: list[str]
    total: int


class ColumnResponse(BaseModel):
    name: str
    type: str
    is_numeric: bool


class TableSchemaResponse(BaseModel):
    table: str
    columns: list[ColumnResponse]


# ============================================
# Query models
# ============================================


class QueryRequest(BaseModel):
    sql: str = Field(description="SQL statement to execute")


class QueryResponse(BaseModel):
    rows: list[dict[str, Any]] = Field(description="Normalized row records")
    columns: list[str] = Field(description="Column names (empty for an empty result)")
    row_count: int
    duration_ms: float


class MosaicQueryRequest(BaseModel):
    """Query object sent by the visualization coordinator."""

    type: Literal["json", "arrow", "exec"] = Field(default="json")
    sql: str


# ============================================
# Chart models
# ============================================


class ChartValidateRequest(BaseModel):
    table: str | None = Field(default=None, description="Table whose schema the config is checked against")
    config: ChartConfig


class ChartValidateResponse(BaseModel):
    is_valid: bool
    error: str | None = None


class PlotRequest(BaseModel):
    table: str
    config: ChartConfig


class LegendItemResponse(BaseModel):
    label: str
    color: str


class PlotResponse(BaseModel):
    spec: dict[str, Any] = Field(description="Declarative plot spec")
    legend: list[LegendItemResponse] = Field(default_factory=list)


# ============================================
# AI models
# ============================================


class ModelInfo(BaseModel):
    id: str
    name: str
    size: str
    description: str
    use_case: str
    speed: str
    quality: str


class ModelListResponse(BaseModel):
    models: list[ModelInfo]
    current_model: str
    loaded_model: str | None = None


class AIStatusResponse(BaseModel):
    status: Literal["idle", "loading", "ready", "generating", "error"]
    progress: str | None = None
    progress_val: float | None = None
    error: str | None = None
    current_model: str
    loaded_model: str | None = None


class SetModelRequest(BaseModel):
    model_id: str


class ModelCachedResponse(BaseModel):
    model_id: str
    cached: bool


class LoadModelRequest(BaseModel):
    model_id: str | None = Field(default=None, description="Defaults to the current selection")


class LoadModelResponse(BaseModel):
    model_id: str
    progress: list[str] = Field(default_factory=list, description="Progress reports in arrival order")


class ChatRequest(BaseModel):
    prompt: str = Field(min_length=1)


class ChatMessageResponse(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    sql: str | None = None
    rows: list[dict[str, Any]] | None = None
    columns: list[str] | None = None
    execution_ms: float | None = None
    sql_error: str | None = None


class PurgeResponse(BaseModel):
    count: int
    models: list[str]


# ============================================
# Transfer and preference models
# ============================================


class ImportSqlResponse(BaseModel):
    executed: int
    failed: int
    errors: list[dict[str, str]] = Field(default_factory=list)


class PreferencesResponse(BaseModel):
    preferences: dict[str, Any]


class PreferenceUpdate(BaseModel):
    value: Any
