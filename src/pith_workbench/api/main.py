"""Pith Workbench API - FastAPI application."""

import time
import uuid
from contextlib import asynccontextmanager

import duckdb
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pith_workbench.ai.runtime import InferenceRuntime
from pith_workbench.api.middleware.metrics import MetricsMiddleware, normalize_path
from pith_workbench.api.routers import ai, charts, health, metrics, preferences, query, tables, transfer
from pith_workbench.config import Settings, settings as default_settings
from pith_workbench.context import create_context
from pith_workbench.errors import (
    ChartConfigError,
    EngineInitError,
    EngineNotInitializedError,
    GenerationError,
    IngestionError,
    ModelLoadError,
    NotInitializedError,
    QueryExecutionError,
    TableNotFoundError,
    UnknownModelError,
    UnsupportedFormatError,
    UnsupportedPlatformError,
    WorkbenchError,
)
from pith_workbench.logging_config import setup_logging
from pith_workbench.metrics import ERROR_COUNT, SERVICE_START_TIME, SERVICE_UP, set_service_info

logger = structlog.get_logger()

# Most specific class wins (looked up along the exception's MRO)
ERROR_STATUS_CODES: dict[type[WorkbenchError], int] = {
    UnsupportedFormatError: 400,
    IngestionError: 400,
    QueryExecutionError: 400,
    ChartConfigError: 400,
    TableNotFoundError: 404,
    UnknownModelError: 404,
    NotInitializedError: 409,
    EngineNotInitializedError: 409,
    EngineInitError: 503,
    UnsupportedPlatformError: 503,
    ModelLoadError: 503,
    GenerationError: 503,
}


def status_code_for(exc: WorkbenchError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


def create_app(
    settings: Settings | None = None, runtime: InferenceRuntime | None = None
) -> FastAPI:
    """Build the application. `runtime` replaces the Ollama client (used by tests)."""
    settings = settings or default_settings
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(
            "application_startup",
            version=settings.api_version,
            debug=settings.debug,
            data_dir=str(settings.data_dir),
        )

        context = create_context(settings, runtime=runtime)
        try:
            await context.start()
        except EngineInitError as e:
            logger.error("engine_init_failed_on_startup", error=e.message, exc_info=True)
            raise
        app.state.context = context

        set_service_info(version=settings.api_version, duckdb_version=duckdb.__version__)
        SERVICE_UP.set(1)
        SERVICE_START_TIME.set(time.time())

        yield

        SERVICE_UP.set(0)
        await context.aclose()
        app.state.context = None
        logger.info("application_shutdown")

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
Pith Workbench API.

Local analytics over an embedded DuckDB database:
- File ingestion (CSV, JSON, Parquet) into tables
- SQL console and visualization coordinator queries
- Chart configuration validation and plot specs
- A local language model assistant that writes and runs SQL
- CSV / SQL export and import
        """,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Log all requests with timing and request ID."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(WorkbenchError)
    async def workbench_exception_handler(request: Request, exc: WorkbenchError):
        """Map typed workbench errors onto HTTP responses, keeping the original message."""
        status_code = status_code_for(exc)
        ERROR_COUNT.labels(type=type(exc).__name__, endpoint=normalize_path(request.url.path)).inc()
        logger.warning(
            "request_failed",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            error=exc.error_code,
            message=exc.message,
        )
        return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        endpoint = normalize_path(request.url.path)
        error_type = type(exc).__name__
        ERROR_COUNT.labels(type=error_type, endpoint=endpoint).inc()

        logger.error(
            "unhandled_exception",
            method=request.method,
            path=request.url.path,
            error=str(exc),
            error_type=error_type,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": str(exc) if settings.debug else "An internal error occurred",
            },
        )

    app.include_router(health.router)
    app.include_router(tables.router)
    app.include_router(query.router)
    app.include_router(charts.router)
    app.include_router(ai.router)
    app.include_router(transfer.router)
    app.include_router(preferences.router)
    app.include_router(metrics.router)

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the health check."""
        return {
            "service": settings.api_title,
            "version": settings.api_version,
            "health": "/health",
            "docs": "/docs" if settings.debug else None,
        }

    return app


app = create_app()


def run() -> None:
    """Entry point for the pith-server script."""
    import uvicorn

    uvicorn.run(
        "pith_workbench.api.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
    )


if __name__ == "__main__":
    run()
