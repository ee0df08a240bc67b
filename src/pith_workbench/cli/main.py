"""Main CLI entry point for the Pith workbench."""

import logging
from typing import Optional

import typer

from pith_workbench import __version__
from pith_workbench.logging_config import setup_logging


# Create main app
app = typer.Typer(
    name="pith",
    help="Local DuckDB analytics workbench with a local model assistant",
    no_args_is_help=True,
)

# Global state
class GlobalState:
    json_output: bool = False
    verbose: bool = False

state = GlobalState()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        print(f"pith version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    json_output: bool = typer.Option(
        False, "--json", "-j",
        help="Output as JSON instead of tables"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logs on stderr"
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    ),
) -> None:
    """Pith - query files with SQL, chart them and ask a local model about them."""
    state.json_output = json_output
    state.verbose = verbose
    setup_logging(stderr=True, level=logging.DEBUG if verbose else logging.WARNING)


# Import and register command groups
from .commands import ask, charts, export, models, prefs, query, tables

app.add_typer(tables.app, name="tables")
app.add_typer(charts.app, name="charts")
app.add_typer(models.app, name="models")
app.add_typer(export.app, name="export")
app.add_typer(prefs.app, name="prefs")
app.command("query")(query.run_query)
app.command("ask")(ask.ask)


if __name__ == "__main__":
    app()
