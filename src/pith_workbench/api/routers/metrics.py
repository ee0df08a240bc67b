"""Prometheus metrics endpoint router."""

import duckdb
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from pith_workbench.api.dependencies import Workbench
from pith_workbench.metrics import set_service_info

router = APIRouter(tags=["metrics"])


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics endpoint",
    description="Returns metrics in Prometheus text format for scraping.",
)
async def get_metrics(context: Workbench):
    """Expose Prometheus metrics in the text exposition format."""
    set_service_info(version=context.settings.api_version, duckdb_version=duckdb.__version__)

    return PlainTextResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
