"""Chart configuration validation.

Pure functions, no I/O: the same `validate_chart_config` call drives the
inline warning while a chart is being configured and the final check right
before a plot is built. Rules run in a fixed order and the first failure wins.
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

from pith_workbench.schema import ColumnSchema, numeric_columns

ChartType = Literal["bar", "bar-h", "line", "area", "scatter", "heatmap", "tick"]
Aggregation = Literal["count", "sum", "avg", "min", "max"]

CHART_TYPE_NAMES: dict[str, str] = {
    "bar": "Bar Chart",
    "bar-h": "Horizontal Bar Chart",
    "line": "Line Chart",
    "area": "Area Chart",
    "scatter": "Scatter Plot",
    "heatmap": "Heatmap",
    "tick": "Tick Plot",
}

Y_AXIS_CHART_TYPES = ("scatter", "heatmap")
NUMERIC_AGGREGATIONS = ("sum", "avg")


class ChartConfig(BaseModel):
    """Chart type, axis bindings and aggregation chosen for one plot."""

    chart_type: ChartType = Field(default="bar", description="Mark family to draw")
    x_column: str = Field(default="", description="Column bound to the X axis")
    y_column: str = Field(default="", description="Column bound to the Y axis")
    aggregation: Aggregation = Field(default="count", description="Y aggregation")
    color_column: str | None = Field(default=None, description="Optional color grouping column")


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: str | None = None


def chart_type_name(chart_type: str) -> str:
    return CHART_TYPE_NAMES.get(chart_type, chart_type)


def requires_y_axis(chart_type: str) -> bool:
    return chart_type in Y_AXIS_CHART_TYPES


def requires_numeric_y(chart_type: str, aggregation: str) -> bool:
    # Scatter and heatmap always plot raw Y values; sum/avg need numbers
    return chart_type in Y_AXIS_CHART_TYPES or aggregation in NUMERIC_AGGREGATIONS


def validate_chart_config(config: ChartConfig, schema: ColumnSchema) -> ValidationResult:
    """Decide whether `config` is renderable against the table `schema`."""
    chart_type = config.chart_type
    x_column = config.x_column
    y_column = config.y_column
    aggregation = config.aggregation

    y_info = schema.get(y_column) if y_column else None
    is_y_numeric = bool(y_info and y_info.is_numeric)
    available = ", ".join(numeric_columns(schema)) or "none available"

    if not x_column:
        return ValidationResult(False, "Please select an X-axis column")

    if requires_y_axis(chart_type) and not y_column:
        return ValidationResult(False, f"{chart_type_name(chart_type)} requires a Y-axis column")

    if requires_numeric_y(chart_type, aggregation):
        if not y_column:
            return ValidationResult(
                False,
                f"{chart_type_name(chart_type)} with {aggregation} aggregation requires a Y-axis column",
            )
        if not is_y_numeric:
            return ValidationResult(
                False,
                f"{chart_type_name(chart_type)} requires a numeric Y-axis column. "
                f"Please select from: {available}",
            )

    if aggregation in NUMERIC_AGGREGATIONS and y_column and not is_y_numeric:
        return ValidationResult(
            False,
            f"{aggregation.upper()} aggregation requires a numeric column. "
            f"Available numeric columns: {available}",
        )

    if chart_type == "heatmap" and not y_column:
        return ValidationResult(False, "Heatmap requires both X and Y axis columns")

    return ValidationResult(True)
