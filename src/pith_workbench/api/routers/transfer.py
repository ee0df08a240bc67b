"""Export and import endpoints."""

from fastapi import APIRouter, File, Response, UploadFile, status

from pith_workbench.api.dependencies import Workbench
from pith_workbench.api.models import ErrorResponse, ImportSqlResponse, IngestResponse
from pith_workbench.api.uploads import read_upload

router = APIRouter(tags=["transfer"])


@router.get(
    "/export/dump.sql",
    response_class=Response,
    summary="SQL dump of all non-empty tables",
)
async def export_sql_dump(context: Workbench) -> Response:
    dump = await context.transfer.export_sql_dump()
    return Response(
        content=dump,
        media_type="application/sql",
        headers={"Content-Disposition": 'attachment; filename="pith_export.sql"'},
    )


@router.get(
    "/export/{table_name}.csv",
    response_class=Response,
    responses={204: {"description": "Table has no rows"}, 404: {"model": ErrorResponse}},
    summary="Export one table as CSV",
)
async def export_csv(table_name: str, context: Workbench) -> Response:
    export = await context.transfer.export_csv(table_name)
    if export is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return Response(
        content=export.content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.post(
    "/import/sql",
    response_model=ImportSqlResponse,
    responses={413: {"model": ErrorResponse}},
    summary="Execute a SQL script",
)
async def import_sql(context: Workbench, file: UploadFile = File(...)) -> ImportSqlResponse:
    upload = await read_upload(file, context.settings.max_upload_size_bytes)
    report = await context.transfer.import_sql(upload.data.decode("utf-8"))
    return ImportSqlResponse(executed=report.executed, failed=report.failed, errors=report.errors)


@router.post(
    "/import/csv",
    response_model=IngestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}},
    summary="Import a CSV file as a table",
)
async def import_csv(context: Workbench, file: UploadFile = File(...)) -> IngestResponse:
    upload = await read_upload(file, context.settings.max_upload_size_bytes)
    result = await context.transfer.import_csv(upload)
    return IngestResponse(
        table_name=result.table_name,
        row_count=result.row_count,
        columns=result.columns,
    )
