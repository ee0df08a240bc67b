"""Health check endpoint."""

import duckdb
import structlog
from fastapi import APIRouter, HTTPException, status

from pith_workbench.api.dependencies import Workbench
from pith_workbench.api.models import ErrorResponse, HealthResponse

logger = structlog.get_logger()
router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Health check",
    description="Check that the service is up and the DuckDB engine is initialized.",
)
async def health_check(context: Workbench) -> HealthResponse:
    manager = context.manager
    logger.info(
        "health_check",
        status="healthy" if manager.is_initialized else "unhealthy",
    )

    if not manager.is_initialized:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "engine_unavailable",
                "message": "DuckDB engine is not initialized",
                "details": {},
            },
        )

    return HealthResponse(
        status="healthy",
        version=context.settings.api_version,
        engine_initialized=True,
        duckdb_version=duckdb.__version__,
        bundle=manager.bundle.name if manager.bundle else None,
    )
