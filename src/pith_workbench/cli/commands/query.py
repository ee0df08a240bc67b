"""The query command."""

import time
from pathlib import Path
from typing import List, Optional

import typer

from pith_workbench.context import WorkbenchContext

from ..main import state
from ..output import print_info, print_json, print_table
from ..session import execute


def run_query(
    sql: str = typer.Argument(..., help="SQL statement"),
    load: Optional[List[Path]] = typer.Option(
        None, "--load", "-l",
        help="Ingest this file first (repeatable); tables are named after the files"
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit",
        help="Maximum rows to display (default from DEFAULT_QUERY_LIMIT)"
    ),
) -> None:
    """Run SQL against the embedded database."""

    async def operation(context: WorkbenchContext):
        start_time = time.perf_counter()
        result = await context.normalizer.run(sql, source="cli")
        shown = limit or context.settings.default_query_limit
        return result, shown, (time.perf_counter() - start_time) * 1000

    result, shown, duration_ms = execute(operation, load=load)

    if state.json_output:
        print_json({
            "rows": result.rows[:shown],
            "columns": result.columns,
            "row_count": result.row_count,
            "duration_ms": round(duration_ms, 2),
        })
        return

    print_table(result.rows[:shown], columns=result.columns or None)
    suffix = f" (showing {shown})" if result.row_count > shown else ""
    print_info(f"{result.row_count:,} row(s){suffix} in {duration_ms:.1f} ms")
