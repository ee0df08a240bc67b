"""Chart commands: validate a configuration, build a plot spec."""

from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from pith_workbench.charts.plot import resolve_plot
from pith_workbench.charts.validators import ChartConfig, validate_chart_config
from pith_workbench.context import WorkbenchContext
from pith_workbench.errors import TableNotFoundError

from ..main import state
from ..output import print_error, print_json, print_success
from ..session import execute

app = typer.Typer(help="Validate chart configurations and build plot specs")


def _config(
    chart_type: str, x: str, y: str, aggregation: str, color: str | None
) -> ChartConfig:
    try:
        return ChartConfig(
            chart_type=chart_type, x_column=x, y_column=y,
            aggregation=aggregation, color_column=color,
        )
    except ValidationError as e:
        print_error(f"Invalid chart options: {e.errors()[0]['msg']}")
        raise typer.Exit(2)


async def _schema(context: WorkbenchContext, table: str):
    if table not in await context.introspector.list_tables():
        raise TableNotFoundError(f"Table {table} does not exist", details={"table": table})
    return await context.introspector.describe(table)


@app.command("validate")
def validate(
    table: str = typer.Argument(..., help="Table the chart reads from"),
    chart_type: str = typer.Option("bar", "--type", "-t", help="bar, bar-h, line, area, scatter, heatmap, tick"),
    x: str = typer.Option("", "--x", help="X-axis column"),
    y: str = typer.Option("", "--y", help="Y-axis column"),
    aggregation: str = typer.Option("count", "--agg", help="count, sum, avg, min, max"),
    color: Optional[str] = typer.Option(None, "--color", help="Color grouping column"),
    load: Optional[List[Path]] = typer.Option(None, "--load", "-l", help="Ingest this file first"),
) -> None:
    """Check a chart configuration against a table's columns."""
    config = _config(chart_type, x, y, aggregation, color)

    async def operation(context: WorkbenchContext):
        return validate_chart_config(config, await _schema(context, table))

    result = execute(operation, load=load)

    if state.json_output:
        print_json({"is_valid": result.is_valid, "error": result.error})
    elif result.is_valid:
        print_success("Chart configuration is valid")
    else:
        print_error(result.error)

    if not result.is_valid:
        raise typer.Exit(1)


@app.command("plot")
def plot(
    table: str = typer.Argument(..., help="Table the chart reads from"),
    chart_type: str = typer.Option("bar", "--type", "-t", help="bar, bar-h, line, area, scatter, heatmap, tick"),
    x: str = typer.Option("", "--x", help="X-axis column"),
    y: str = typer.Option("", "--y", help="Y-axis column"),
    aggregation: str = typer.Option("count", "--agg", help="count, sum, avg, min, max"),
    color: Optional[str] = typer.Option(None, "--color", help="Color grouping column"),
    load: Optional[List[Path]] = typer.Option(None, "--load", "-l", help="Ingest this file first"),
) -> None:
    """Print the plot spec for a chart configuration as JSON."""
    config = _config(chart_type, x, y, aggregation, color)

    async def operation(context: WorkbenchContext):
        schema = await _schema(context, table)
        return await resolve_plot(context.plots.plot(table, config, schema))

    element = execute(operation, load=load)
    print_json({
        "spec": element.plot.spec,
        "legend": [{"label": item.label, "color": item.color} for item in element.plot.legend],
    })
