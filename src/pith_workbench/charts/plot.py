"""Plot specification builder.

Turns a validated ChartConfig into a Mosaic-style declarative plot spec
(`{"plot": [mark, ...], "xLabel": ..., ...}`) that the visualization
coordinator renders.

The builder hands its result across the render boundary as a tagged value:
`PlotElement` when the spec is ready, `PendingPlotElement` when it still has
to query the database (schema lookup or color domain). `resolve_plot` settles
either into a `PlotElement` exactly once.
"""

from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog

from pith_workbench.charts.validators import ChartConfig, validate_chart_config
from pith_workbench.errors import ChartConfigError, QueryExecutionError
from pith_workbench.query import QueryNormalizer, quote_identifier
from pith_workbench.schema import ColumnSchema, SchemaIntrospector

logger = structlog.get_logger()

# Tableau10
COLOR_PALETTE = [
    "#4e79a7", "#f28e2b", "#e15759", "#76b7b2", "#59a14f",
    "#edc948", "#b07aa1", "#ff9da7", "#9c755f", "#bab0ac",
]
DEFAULT_COLOR = "steelblue"
COLOR_DOMAIN_LIMIT = 10

PLOT_WIDTH = 650
PLOT_HEIGHT = 450


@dataclass(frozen=True)
class LegendItem:
    label: str
    color: str


@dataclass(frozen=True)
class PlotSpec:
    spec: dict[str, Any]
    legend: list[LegendItem] = field(default_factory=list)


@dataclass(frozen=True)
class PlotElement:
    plot: PlotSpec
    kind: Literal["element"] = "element"


@dataclass(frozen=True)
class PendingPlotElement:
    pending: Awaitable[PlotSpec]
    kind: Literal["pending"] = "pending"


PlotValue = PlotElement | PendingPlotElement


async def resolve_plot(value: PlotValue) -> PlotElement:
    if isinstance(value, PlotElement):
        return value
    return PlotElement(await value.pending)


def _is_numeric(schema: ColumnSchema, column: str) -> bool:
    info = schema.get(column)
    return bool(info and info.is_numeric)


def aggregate_channel(config: ChartConfig, schema: ColumnSchema) -> dict[str, Any]:
    """Y channel for aggregated marks; non-numeric columns fall back to count."""
    aggregation = config.aggregation
    column = config.y_column
    if aggregation == "count" or not column:
        return {"count": None}
    if not _is_numeric(schema, column) and aggregation not in ("min", "max"):
        return {"count": None}
    return {aggregation: column}


def value_label(config: ChartConfig) -> str:
    if config.aggregation == "count":
        return "Count"
    return f"{config.aggregation}({config.y_column})"


def build_spec(
    table: str,
    config: ChartConfig,
    schema: ColumnSchema,
    color_domain: list[str] | None = None,
) -> PlotSpec:
    """Build the plot spec for an already validated configuration."""
    data = {"from": table}
    x = config.x_column
    y = config.y_column
    color = config.color_column or DEFAULT_COLOR
    spec: dict[str, Any] = {}
    marks: list[dict[str, Any]] = []
    legend: list[LegendItem] = []

    if color_domain is not None:
        spec["colorDomain"] = color_domain
        spec["colorRange"] = COLOR_PALETTE
        legend = [
            LegendItem(label=label or "null", color=COLOR_PALETTE[i % len(COLOR_PALETTE)])
            for i, label in enumerate(color_domain)
        ]

    chart_type = config.chart_type
    if chart_type == "bar":
        marks.append({"mark": "rectY", "data": data, "x": x,
                      "y": aggregate_channel(config, schema), "fill": color})
        spec["xLabel"] = x
        spec["yLabel"] = value_label(config)
    elif chart_type == "bar-h":
        marks.append({"mark": "rectX", "data": data, "y": x,
                      "x": aggregate_channel(config, schema), "fill": color})
        spec["yLabel"] = x
        spec["xLabel"] = value_label(config)
    elif chart_type == "line":
        marks.append({"mark": "lineY", "data": data, "x": x,
                      "y": aggregate_channel(config, schema), "stroke": color})
        spec["xLabel"] = x
        spec["yLabel"] = value_label(config)
    elif chart_type == "area":
        marks.append({"mark": "areaY", "data": data, "x": x,
                      "y": aggregate_channel(config, schema), "fill": color,
                      "fillOpacity": 0.6})
        spec["xLabel"] = x
        spec["yLabel"] = value_label(config)
    elif chart_type == "scatter":
        marks.append({"mark": "dot", "data": data, "x": x, "y": y,
                      "fill": color, "r": 3, "opacity": 0.6})
        spec["xLabel"] = x
        spec["yLabel"] = y
    elif chart_type == "heatmap":
        x_def = {"bin": x} if _is_numeric(schema, x) else x
        y_def = {"bin": y} if _is_numeric(schema, y) else y
        marks.append({"mark": "rect", "data": data, "x": x_def, "y": y_def,
                      "fill": {"count": None}})
        spec["xLabel"] = x
        spec["yLabel"] = y
        spec["colorLegend"] = {"title": "Count"}
    elif chart_type == "tick":
        marks.append({"mark": "tickX", "data": data, "x": x, "stroke": color})
        spec["xLabel"] = x

    spec["plot"] = marks
    spec.update({
        "width": PLOT_WIDTH,
        "height": PLOT_HEIGHT,
        "yGrid": True,
        "marginLeft": 50,
        "marginBottom": 40,
    })
    return PlotSpec(spec=spec, legend=legend)


class PlotBuilder:
    """Validates a chart configuration and produces its plot spec."""

    def __init__(self, normalizer: QueryNormalizer, introspector: SchemaIntrospector):
        self.normalizer = normalizer
        self.introspector = introspector

    def plot(
        self, table: str, config: ChartConfig, schema: ColumnSchema | None = None
    ) -> PlotValue:
        needs_domain = bool(config.color_column) and config.chart_type != "heatmap"
        if schema is not None and not needs_domain:
            self._check(config, schema)
            return PlotElement(build_spec(table, config, schema))
        return PendingPlotElement(self._build(table, config, schema))

    async def _build(
        self, table: str, config: ChartConfig, schema: ColumnSchema | None
    ) -> PlotSpec:
        if schema is None:
            schema = await self.introspector.describe(table)
        self._check(config, schema)

        color_domain = None
        if config.color_column and config.chart_type != "heatmap":
            color_domain = await self._color_domain(table, config.color_column)
        return build_spec(table, config, schema, color_domain)

    @staticmethod
    def _check(config: ChartConfig, schema: ColumnSchema) -> None:
        validation = validate_chart_config(config, schema)
        if not validation.is_valid:
            raise ChartConfigError(
                validation.error,
                details={"chart_type": config.chart_type, "x_column": config.x_column,
                         "y_column": config.y_column, "aggregation": config.aggregation},
            )

    async def _color_domain(self, table: str, column: str) -> list[str] | None:
        sql = (
            f"SELECT DISTINCT {quote_identifier(column)} FROM {quote_identifier(table)} "
            f"ORDER BY 1 LIMIT {COLOR_DOMAIN_LIMIT}"
        )
        try:
            result = await self.normalizer.run(sql, source="chart")
        except QueryExecutionError as e:
            logger.warning("color_domain_fetch_failed", table=table, column=column, error=e.message)
            return None
        return ["null" if value is None else str(value)
                for value in (next(iter(row.values())) for row in result.rows)]
