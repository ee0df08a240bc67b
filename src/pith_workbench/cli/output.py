"""Console rendering for query results, model lists and messages."""

import json
from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

console = Console()
error_console = Console(stderr=True)

# Query results carry integers as floats; long text cells are clipped
MAX_CELL_WIDTH = 60


def _format_value(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    if isinstance(value, (list, dict)):
        text = json.dumps(value, default=str)
    else:
        text = str(value)
    if len(text) > MAX_CELL_WIDTH:
        return text[: MAX_CELL_WIDTH - 3] + "..."
    return text


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def print_table(
    rows: list[dict[str, Any]],
    columns: list[str] | None = None,
    title: str | None = None,
) -> None:
    """Render row records. Columns default to the keys of the first row."""
    if not rows:
        console.print("[dim]No rows[/dim]")
        return

    columns = columns or list(rows[0])
    table = Table(title=title, box=box.SIMPLE_HEAVY)
    for column in columns:
        numeric = all(isinstance(row.get(column), (int, float)) for row in rows if row.get(column) is not None)
        table.add_column(column, justify="right" if numeric else "left")

    for row in rows:
        table.add_row(*[_format_value(row.get(column)) for column in columns])

    console.print(table)


def print_dict(data: dict[str, Any], title: str | None = None) -> None:
    """Key/value listing, used for preferences."""
    table = Table(title=title, box=box.SIMPLE_HEAVY, show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(key, _format_value(value))
    console.print(table)


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    error_console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    console.print(f"[dim]{message}[/dim]")
