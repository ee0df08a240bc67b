"""Table endpoints: file ingestion, listing and schema."""

import structlog
from fastapi import APIRouter, File, UploadFile, status

from pith_workbench.api.dependencies import Workbench
from pith_workbench.api.models import (
    ColumnResponse,
    ErrorResponse,
    IngestResponse,
    TableListResponse,
    TableSchemaResponse,
)
from pith_workbench.api.uploads import read_upload
from pith_workbench.errors import TableNotFoundError

logger = structlog.get_logger()
router = APIRouter(prefix="/tables", tags=["tables"])


@router.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}},
    summary="Ingest a CSV, JSON or Parquet file as a table",
)
async def ingest_file(context: Workbench, file: UploadFile = File(...)) -> IngestResponse:
    """
    Create a table from an uploaded file.

    The table name is derived from the file name. An existing table with the
    same name is left untouched.
    """
    upload = await read_upload(file, context.settings.max_upload_size_bytes)
    result = await context.ingestion.ingest(upload)
    return IngestResponse(
        table_name=result.table_name,
        row_count=result.row_count,
        columns=result.columns,
    )


@router.get("", response_model=TableListResponse, summary="List tables")
async def list_tables(context: Workbench) -> TableListResponse:
    tables = await context.introspector.list_tables()
    return TableListResponse(tables=tables, total=len(tables))


@router.get(
    "/{table_name}/schema",
    response_model=TableSchemaResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Describe a table",
)
async def get_table_schema(table_name: str, context: Workbench) -> TableSchemaResponse:
    if table_name not in await context.introspector.list_tables():
        raise TableNotFoundError(
            f"Table {table_name} does not exist", details={"table": table_name}
        )

    schema = await context.introspector.describe(table_name)
    return TableSchemaResponse(
        table=table_name,
        columns=[
            ColumnResponse(name=name, type=info.type, is_numeric=info.is_numeric)
            for name, info in schema.items()
        ],
    )
