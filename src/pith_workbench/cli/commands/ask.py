"""The ask command: one question to the local model assistant."""

from pathlib import Path
from typing import List, Optional

import typer

from pith_workbench.ai.runtime import ProgressReport
from pith_workbench.context import WorkbenchContext

from ..main import state
from ..output import print_info, print_json, print_table, print_warning
from ..session import execute


def ask(
    prompt: str = typer.Argument(..., help="Question about your data"),
    model: Optional[str] = typer.Option(
        None, "--model", "-m",
        help="Model id (default: the model selected with `pith models use`)"
    ),
    load: Optional[List[Path]] = typer.Option(
        None, "--load", "-l",
        help="Ingest this file first (repeatable)"
    ),
) -> None:
    """Ask the assistant; SQL in its answer is run and the result shown."""

    async def operation(context: WorkbenchContext):
        last_progress = ""

        def on_progress(report: ProgressReport) -> None:
            nonlocal last_progress
            if state.json_output or not report.text or report.text == last_progress:
                return
            last_progress = report.text
            print_info(report.text)

        await context.lifecycle.init(on_progress, model)

        printed = 0

        def on_update(text: str) -> None:
            nonlocal printed
            if not state.json_output:
                typer.echo(text[printed:], nl=False)
                printed = len(text)

        return await context.chat.ask(prompt, on_update)

    message = execute(operation, load=load)

    if state.json_output:
        print_json(message.to_dict())
        return

    typer.echo()
    if message.sql is None:
        return
    if message.sql_error:
        print_warning(f"Query failed: {message.sql_error}")
        return
    print_table(message.rows or [], columns=message.columns or None)
    print_info(f"{len(message.rows or []):,} row(s) in {message.execution_ms} ms")
