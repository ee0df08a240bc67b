"""Table commands: ingest files, list tables, describe a table."""

from pathlib import Path
from typing import List, Optional

import typer

from pith_workbench.context import WorkbenchContext
from pith_workbench.errors import TableNotFoundError
from pith_workbench.ingestion import LocalFile

from ..main import state
from ..output import print_json, print_success, print_table
from ..session import execute

app = typer.Typer(help="Ingest and inspect tables")

LoadOption = typer.Option(
    None, "--load", "-l",
    help="Ingest this file before running the command (repeatable)"
)


@app.command("ingest")
def ingest_files(
    files: List[Path] = typer.Argument(..., help="CSV, JSON or Parquet files", exists=True, dir_okay=False),
) -> None:
    """Create one table per file.

    The table name is the file name without extension, lowercased, with
    every character outside [a-z0-9_] replaced by an underscore.
    """

    async def operation(context: WorkbenchContext):
        return [await context.ingestion.ingest(LocalFile(path)) for path in files]

    results = execute(operation)

    if state.json_output:
        print_json([
            {"table_name": r.table_name, "row_count": r.row_count, "columns": r.columns}
            for r in results
        ])
        return

    for result in results:
        print_success(f"Table '{result.table_name}' ingested: {result.row_count:,} rows")
    print_table(
        [
            {"table": r.table_name, "rows": f"{r.row_count:,}", "columns": ", ".join(r.columns)}
            for r in results
        ]
    )


@app.command("list")
def list_tables(
    load: Optional[List[Path]] = LoadOption,
) -> None:
    """List tables."""

    async def operation(context: WorkbenchContext):
        return await context.introspector.list_tables()

    tables = execute(operation, load=load)

    if state.json_output:
        print_json({"tables": tables, "total": len(tables)})
        return

    if not tables:
        typer.echo("No tables found")
        return

    print_table([{"name": name} for name in tables])
    typer.echo(f"\nTotal: {len(tables)} table(s)")


@app.command("describe")
def describe_table(
    table: str = typer.Argument(..., help="Table name"),
    load: Optional[List[Path]] = LoadOption,
) -> None:
    """Show the columns of a table and whether each one is numeric."""

    async def operation(context: WorkbenchContext):
        if table not in await context.introspector.list_tables():
            raise TableNotFoundError(f"Table {table} does not exist", details={"table": table})
        return await context.introspector.describe(table)

    schema = execute(operation, load=load)

    rows = [
        {"column": name, "type": info.type, "numeric": info.is_numeric}
        for name, info in schema.items()
    ]
    if state.json_output:
        print_json({"table": table, "columns": rows})
        return

    print_table(rows, title=table)
