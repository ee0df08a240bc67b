"""Prometheus metrics definitions for the Pith workbench.

This module defines all Prometheus metrics used for observability:
- HTTP request metrics (count, duration, in-flight)
- Query metrics (by source, duration)
- Ingestion and data transfer metrics
- Model lifecycle and generation metrics
"""

import time
from prometheus_client import Counter, Histogram, Gauge, Info

# =============================================================================
# Service Health Metrics
# =============================================================================

SERVICE_UP = Gauge(
    "pith_up",
    "Whether the workbench service is up (1) or down (0)"
)

SERVICE_START_TIME = Gauge(
    "pith_start_time_seconds",
    "Unix timestamp when the service started"
)

_start_time = time.time()
SERVICE_START_TIME.set(_start_time)
SERVICE_UP.set(1)

# =============================================================================
# HTTP Request Metrics
# =============================================================================

REQUEST_COUNT = Counter(
    "pith_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"]
)

REQUEST_DURATION = Histogram(
    "pith_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

REQUEST_IN_FLIGHT = Gauge(
    "pith_requests_in_flight",
    "Number of HTTP requests currently being processed",
    ["method"]
)

ERROR_COUNT = Counter(
    "pith_errors_total",
    "Total number of errors by type",
    ["type", "endpoint"]
)

# =============================================================================
# Engine Metrics
# =============================================================================

ENGINE_INITIALIZATIONS = Counter(
    "pith_engine_initializations_total",
    "Number of embedded database initializations",
    ["status"]
)

QUERY_COUNT = Counter(
    "pith_queries_total",
    "Total number of SQL queries executed",
    ["source", "status"]  # source: console, mosaic, ai, ingestion, schema, export
)

QUERY_DURATION = Histogram(
    "pith_query_duration_seconds",
    "SQL query duration in seconds",
    ["source"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 60.0, 300.0]
)

QUERY_ROWS_TOTAL = Counter(
    "pith_query_rows_total",
    "Total rows returned by normalized queries"
)

# =============================================================================
# Ingestion / Transfer Metrics
# =============================================================================

INGEST_OPERATIONS_TOTAL = Counter(
    "pith_ingest_operations_total",
    "Total file ingestion operations",
    ["format", "status"]
)

INGEST_DURATION = Histogram(
    "pith_ingest_duration_seconds",
    "File ingestion duration in seconds",
    ["format"],
    buckets=[0.01, 0.1, 0.5, 1.0, 5.0, 30.0, 60.0, 300.0]
)

INGEST_ROWS_TOTAL = Counter(
    "pith_ingest_rows_total",
    "Total rows ingested"
)

INGEST_BUFFER_FALLBACKS = Counter(
    "pith_ingest_buffer_fallbacks_total",
    "Ingestions that fell back from handle registration to a buffer copy"
)

EXPORT_OPERATIONS_TOTAL = Counter(
    "pith_export_operations_total",
    "Total export operations",
    ["format"]
)

IMPORT_STATEMENTS_TOTAL = Counter(
    "pith_import_statements_total",
    "SQL dump statements executed during import",
    ["status"]
)

TABLES_TOTAL = Gauge(
    "pith_tables_total",
    "Number of tables in the embedded database"
)

# =============================================================================
# Model Lifecycle Metrics
# =============================================================================

MODEL_LOADS_TOTAL = Counter(
    "pith_model_loads_total",
    "Model load attempts",
    ["model", "status"]
)

MODEL_LOAD_DURATION = Histogram(
    "pith_model_load_duration_seconds",
    "Model load duration in seconds",
    ["model"],
    buckets=[0.5, 1.0, 5.0, 30.0, 60.0, 300.0, 900.0]
)

MODEL_UNLOADS_TOTAL = Counter(
    "pith_model_unloads_total",
    "Model unloads"
)

GENERATIONS_TOTAL = Counter(
    "pith_generations_total",
    "Chat generations",
    ["status"]
)

GENERATION_DURATION = Histogram(
    "pith_generation_duration_seconds",
    "Streamed generation duration in seconds",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0]
)

GENERATION_CHUNKS_TOTAL = Counter(
    "pith_generation_chunks_total",
    "Streamed chunks received from the inference runtime"
)

# =============================================================================
# Service Info
# =============================================================================

SERVICE_INFO = Info(
    "pith_service",
    "Pith workbench information"
)


def set_service_info(version: str, duckdb_version: str) -> None:
    """Set service info labels."""
    SERVICE_INFO.info({
        "version": version,
        "duckdb_version": duckdb_version
    })
