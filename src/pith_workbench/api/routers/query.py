"""SQL console and visualization coordinator query endpoints."""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from pith_workbench.api.dependencies import Workbench
from pith_workbench.api.models import (
    ErrorResponse,
    MosaicQueryRequest,
    QueryRequest,
    QueryResponse,
)

router = APIRouter(tags=["query"])


@router.post(
    "/query",
    response_model=QueryResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Execute SQL",
)
async def run_query(request: QueryRequest, context: Workbench) -> QueryResponse:
    start_time = time.perf_counter()
    result = await context.normalizer.run(request.sql, source="console")
    return QueryResponse(
        rows=result.rows,
        columns=result.columns,
        row_count=result.row_count,
        duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
    )


@router.post(
    "/mosaic/query",
    responses={400: {"model": ErrorResponse}},
    summary="Coordinator query",
    description=(
        "Runs a coordinator query object. `json` returns row records, `arrow` "
        "returns the column-oriented view, `exec` runs the statement and returns nothing."
    ),
)
async def run_mosaic_query(request: MosaicQueryRequest, context: Workbench):
    table = await context.connector.query(request.model_dump())
    if request.type == "exec":
        return JSONResponse(content=None)
    if request.type == "arrow":
        return {"columns": table.columns, "data": table.to_columns(), "num_rows": table.num_rows}
    return table.rows
