"""Local workbench sessions for CLI commands.

Every command runs against its own in-process context. With the default
in-memory database, tables only live for one command, which is why most
commands accept `--load FILE` to ingest files first. Set DATABASE_PATH to
keep tables between commands.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TypeVar

import typer

from pith_workbench.config import Settings
from pith_workbench.context import WorkbenchContext, create_context
from pith_workbench.errors import WorkbenchError
from pith_workbench.ingestion import LocalFile

from .output import print_error

T = TypeVar("T")


@asynccontextmanager
async def open_workbench(load: Sequence[Path] = ()):
    context = create_context(Settings())
    try:
        await context.start()
        for path in load:
            await context.ingestion.ingest(LocalFile(path))
        yield context
    finally:
        await context.aclose()


def execute(
    operation: Callable[[WorkbenchContext], Awaitable[T]],
    load: Sequence[Path] | None = None,
) -> T:
    """Run `operation` in a fresh workbench; typed errors exit with status 1."""

    async def main() -> T:
        async with open_workbench(load or ()) as context:
            return await operation(context)

    try:
        return asyncio.run(main())
    except WorkbenchError as e:
        print_error(e.message)
        raise typer.Exit(1)
