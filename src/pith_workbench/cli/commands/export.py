"""Export commands: CSV per table, SQL dump of all tables."""

from pathlib import Path
from typing import List, Optional

import typer

from pith_workbench.context import WorkbenchContext

from ..main import state
from ..output import print_json, print_success
from ..session import execute

app = typer.Typer(help="Export tables as CSV or a SQL dump")


@app.command("csv")
def export_csv(
    table: str = typer.Argument(..., help="Table name"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o",
        help="Output file (default: <table>_export.csv in the current directory)"
    ),
    load: Optional[List[Path]] = typer.Option(None, "--load", "-l", help="Ingest this file first"),
) -> None:
    """Write one table to a CSV file. Empty tables are skipped."""

    async def operation(context: WorkbenchContext):
        return await context.transfer.export_csv(table)

    export = execute(operation, load=load)

    if export is None:
        if state.json_output:
            print_json({"table": table, "row_count": 0, "path": None})
        else:
            typer.echo(f"Table {table} has no rows, nothing exported")
        return

    target = output or Path(export.filename)
    target.write_text(export.content + "\n", encoding="utf-8")

    if state.json_output:
        print_json({"table": table, "row_count": export.row_count, "path": str(target)})
    else:
        print_success(f"Exported {export.row_count:,} rows to {target}")


@app.command("sql")
def export_sql(
    output: Path = typer.Option(Path("pith_export.sql"), "--output", "-o", help="Output file"),
    load: Optional[List[Path]] = typer.Option(None, "--load", "-l", help="Ingest this file first"),
) -> None:
    """Write a SQL dump that recreates every non-empty table."""

    async def operation(context: WorkbenchContext):
        return await context.transfer.export_sql_dump()

    dump = execute(operation, load=load)
    output.write_text(dump, encoding="utf-8")

    if state.json_output:
        print_json({"path": str(output), "size_bytes": len(dump.encode("utf-8"))})
    else:
        print_success(f"SQL dump written to {output}")
