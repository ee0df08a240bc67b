"""Chart configuration validation and plot spec endpoints."""

from fastapi import APIRouter

from pith_workbench.api.dependencies import Workbench
from pith_workbench.api.models import (
    ChartValidateRequest,
    ChartValidateResponse,
    ErrorResponse,
    LegendItemResponse,
    PlotRequest,
    PlotResponse,
)
from pith_workbench.charts.plot import resolve_plot
from pith_workbench.charts.validators import validate_chart_config
from pith_workbench.context import WorkbenchContext
from pith_workbench.errors import TableNotFoundError
from pith_workbench.schema import ColumnSchema

router = APIRouter(prefix="/charts", tags=["charts"])


async def _table_schema(context: WorkbenchContext, table: str) -> ColumnSchema:
    if table not in await context.introspector.list_tables():
        raise TableNotFoundError(f"Table {table} does not exist", details={"table": table})
    return await context.introspector.describe(table)


@router.post(
    "/validate",
    response_model=ChartValidateResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Validate a chart configuration",
)
async def validate_chart(request: ChartValidateRequest, context: Workbench) -> ChartValidateResponse:
    schema = await _table_schema(context, request.table) if request.table else {}
    result = validate_chart_config(request.config, schema)
    return ChartValidateResponse(is_valid=result.is_valid, error=result.error)


@router.post(
    "/plot",
    response_model=PlotResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Build a plot spec",
)
async def build_plot(request: PlotRequest, context: Workbench) -> PlotResponse:
    schema = await _table_schema(context, request.table)
    element = await resolve_plot(context.plots.plot(request.table, request.config, schema))
    return PlotResponse(
        spec=element.plot.spec,
        legend=[LegendItemResponse(label=item.label, color=item.color) for item in element.plot.legend],
    )
