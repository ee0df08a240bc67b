"""Tests for plot spec building."""

import asyncio

import pytest

from pith_workbench.charts.plot import (
    COLOR_PALETTE,
    DEFAULT_COLOR,
    PendingPlotElement,
    PlotElement,
    aggregate_channel,
    build_spec,
    resolve_plot,
    value_label,
)
from pith_workbench.charts.validators import ChartConfig
from pith_workbench.errors import ChartConfigError
from pith_workbench.ingestion import BufferedFile
from pith_workbench.schema import ColumnInfo

SCHEMA = {
    "region": ColumnInfo(type="VARCHAR", is_numeric=False),
    "units": ColumnInfo(type="BIGINT", is_numeric=True),
    "revenue": ColumnInfo(type="DOUBLE", is_numeric=True),
}

ORDERS_CSV = (
    "region,units,revenue\n"
    "east,3,30.5\n"
    "west,1,12.0\n"
    "east,2,18.25\n"
    "north,5,50.0\n"
)


class TestAggregateChannel:
    def test_count(self):
        chart = ChartConfig(x_column="region", y_column="units", aggregation="count")
        assert aggregate_channel(chart, SCHEMA) == {"count": None}

    def test_sum_numeric(self):
        chart = ChartConfig(x_column="region", y_column="revenue", aggregation="sum")
        assert aggregate_channel(chart, SCHEMA) == {"sum": "revenue"}

    def test_sum_on_text_falls_back_to_count(self):
        chart = ChartConfig(x_column="region", y_column="region", aggregation="sum")
        assert aggregate_channel(chart, SCHEMA) == {"count": None}

    def test_max_on_text_is_kept(self):
        chart = ChartConfig(x_column="units", y_column="region", aggregation="max")
        assert aggregate_channel(chart, SCHEMA) == {"max": "region"}

    def test_value_label(self):
        assert value_label(ChartConfig(x_column="a")) == "Count"
        assert value_label(ChartConfig(x_column="a", y_column="b", aggregation="avg")) == "avg(b)"


class TestBuildSpec:
    def test_bar_chart(self):
        chart = ChartConfig(chart_type="bar", x_column="region", y_column="revenue", aggregation="sum")
        spec = build_spec("orders", chart, SCHEMA).spec

        assert spec["plot"] == [{
            "mark": "rectY",
            "data": {"from": "orders"},
            "x": "region",
            "y": {"sum": "revenue"},
            "fill": DEFAULT_COLOR,
        }]
        assert spec["xLabel"] == "region"
        assert spec["yLabel"] == "sum(revenue)"
        assert spec["width"] == 650
        assert spec["height"] == 450

    def test_horizontal_bar_swaps_axes(self):
        chart = ChartConfig(chart_type="bar-h", x_column="region")
        spec = build_spec("orders", chart, SCHEMA).spec

        mark = spec["plot"][0]
        assert mark["mark"] == "rectX"
        assert mark["y"] == "region"
        assert mark["x"] == {"count": None}
        assert spec["yLabel"] == "region"
        assert spec["xLabel"] == "Count"

    @pytest.mark.parametrize(
        "chart_type,mark_name,color_key",
        [("line", "lineY", "stroke"), ("area", "areaY", "fill"), ("tick", "tickX", "stroke")],
    )
    def test_mark_types(self, chart_type, mark_name, color_key):
        chart = ChartConfig(chart_type=chart_type, x_column="units", y_column="revenue", aggregation="avg")
        mark = build_spec("orders", chart, SCHEMA).spec["plot"][0]
        assert mark["mark"] == mark_name
        assert mark[color_key] == DEFAULT_COLOR

    def test_scatter_plots_raw_values(self):
        chart = ChartConfig(chart_type="scatter", x_column="units", y_column="revenue", color_column="region")
        mark = build_spec("orders", chart, SCHEMA).spec["plot"][0]
        assert mark["mark"] == "dot"
        assert mark["y"] == "revenue"
        assert mark["fill"] == "region"

    def test_heatmap_bins_numeric_axes(self):
        chart = ChartConfig(chart_type="heatmap", x_column="region", y_column="units")
        spec = build_spec("orders", chart, SCHEMA).spec
        mark = spec["plot"][0]
        assert mark["x"] == "region"
        assert mark["y"] == {"bin": "units"}
        assert mark["fill"] == {"count": None}
        assert spec["colorLegend"] == {"title": "Count"}

    def test_color_domain_builds_legend(self):
        chart = ChartConfig(chart_type="bar", x_column="region", color_column="region")
        plot = build_spec("orders", chart, SCHEMA, color_domain=["east", "west"])

        assert plot.spec["colorDomain"] == ["east", "west"]
        assert plot.spec["colorRange"] == COLOR_PALETTE
        assert [(item.label, item.color) for item in plot.legend] == [
            ("east", COLOR_PALETTE[0]),
            ("west", COLOR_PALETTE[1]),
        ]


class TestPlotBuilder:
    def test_known_schema_without_color_is_ready(self, context):
        chart = ChartConfig(chart_type="bar", x_column="region")
        value = context.plots.plot("orders", chart, schema=SCHEMA)

        assert isinstance(value, PlotElement)
        assert value.kind == "element"
        assert asyncio.run(resolve_plot(value)) is value

    def test_invalid_config_raises_immediately(self, context):
        chart = ChartConfig(chart_type="scatter", x_column="units")
        with pytest.raises(ChartConfigError) as exc_info:
            context.plots.plot("orders", chart, schema=SCHEMA)
        assert exc_info.value.message == "Scatter Plot requires a Y-axis column"
        assert exc_info.value.error_code == "invalid_chart_config"

    def test_pending_plot_fetches_schema_and_color_domain(self, context):
        chart = ChartConfig(chart_type="bar", x_column="region", y_column="revenue",
                            aggregation="sum", color_column="region")

        async def scenario():
            await context.start()
            await context.ingestion.ingest(BufferedFile(name="orders.csv", data=ORDERS_CSV.encode()))
            value = context.plots.plot("orders", chart)
            assert isinstance(value, PendingPlotElement)
            assert value.kind == "pending"
            return await resolve_plot(value)

        element = asyncio.run(scenario())

        assert element.plot.spec["colorDomain"] == ["east", "north", "west"]
        assert [item.label for item in element.plot.legend] == ["east", "north", "west"]
        assert element.plot.spec["plot"][0]["fill"] == "region"

    def test_pending_plot_validates_against_fetched_schema(self, context):
        chart = ChartConfig(chart_type="line", x_column="region", y_column="region", aggregation="sum")

        async def scenario():
            await context.start()
            await context.ingestion.ingest(BufferedFile(name="orders.csv", data=ORDERS_CSV.encode()))
            await resolve_plot(context.plots.plot("orders", chart))

        with pytest.raises(ChartConfigError):
            asyncio.run(scenario())

    def test_missing_color_column_drops_domain(self, context):
        chart = ChartConfig(chart_type="bar", x_column="region", color_column="ghost")

        async def scenario():
            await context.start()
            await context.ingestion.ingest(BufferedFile(name="orders.csv", data=ORDERS_CSV.encode()))
            return await resolve_plot(context.plots.plot("orders", chart))

        element = asyncio.run(scenario())

        assert "colorDomain" not in element.plot.spec
        assert element.plot.legend == []
