"""Tests for chart configuration validation."""

import pytest

from pith_workbench.charts.validators import (
    ChartConfig,
    requires_numeric_y,
    requires_y_axis,
    validate_chart_config,
)
from pith_workbench.schema import ColumnInfo

SCHEMA = {
    "region": ColumnInfo(type="VARCHAR", is_numeric=False),
    "units": ColumnInfo(type="INTEGER", is_numeric=True),
    "revenue": ColumnInfo(type="DOUBLE", is_numeric=True),
}
TEXT_ONLY_SCHEMA = {"region": ColumnInfo(type="VARCHAR", is_numeric=False)}


def config(**kwargs) -> ChartConfig:
    return ChartConfig(**kwargs)


class TestRules:
    def test_missing_x_axis(self):
        result = validate_chart_config(config(chart_type="bar"), SCHEMA)
        assert not result.is_valid
        assert result.error == "Please select an X-axis column"

    def test_scatter_requires_y_axis(self):
        result = validate_chart_config(config(chart_type="scatter", x_column="units"), SCHEMA)
        assert result.error == "Scatter Plot requires a Y-axis column"

    def test_heatmap_requires_y_axis(self):
        result = validate_chart_config(config(chart_type="heatmap", x_column="region"), SCHEMA)
        assert result.error == "Heatmap requires a Y-axis column"

    def test_sum_without_y_axis(self):
        result = validate_chart_config(
            config(chart_type="bar", x_column="region", aggregation="sum"), SCHEMA
        )
        assert result.error == "Bar Chart with sum aggregation requires a Y-axis column"

    def test_scatter_requires_numeric_y(self):
        result = validate_chart_config(
            config(chart_type="scatter", x_column="units", y_column="region"), SCHEMA
        )
        assert result.error == (
            "Scatter Plot requires a numeric Y-axis column. Please select from: units, revenue"
        )

    def test_avg_on_text_column_lists_none_available(self):
        result = validate_chart_config(
            config(chart_type="line", x_column="region", y_column="region", aggregation="avg"),
            TEXT_ONLY_SCHEMA,
        )
        assert result.error == (
            "Line Chart requires a numeric Y-axis column. Please select from: none available"
        )

    def test_unknown_y_column_is_not_numeric(self):
        result = validate_chart_config(
            config(chart_type="bar", x_column="region", y_column="ghost", aggregation="sum"), SCHEMA
        )
        assert not result.is_valid
        assert "numeric Y-axis column" in result.error


class TestValidConfigs:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"chart_type": "bar", "x_column": "region"},
            {"chart_type": "bar", "x_column": "region", "y_column": "region", "aggregation": "count"},
            {"chart_type": "bar-h", "x_column": "region", "y_column": "revenue", "aggregation": "sum"},
            {"chart_type": "line", "x_column": "region", "y_column": "units", "aggregation": "avg"},
            {"chart_type": "area", "x_column": "region", "y_column": "region", "aggregation": "max"},
            {"chart_type": "scatter", "x_column": "units", "y_column": "revenue"},
            {"chart_type": "heatmap", "x_column": "region", "y_column": "units"},
            {"chart_type": "tick", "x_column": "units"},
        ],
    )
    def test_valid(self, kwargs):
        result = validate_chart_config(config(**kwargs), SCHEMA)
        assert result.is_valid
        assert result.error is None

    def test_count_bar_is_valid_for_any_y(self):
        """Count bars never look at the Y column type."""
        for y_column in ("", "region", "units", "missing"):
            result = validate_chart_config(
                config(chart_type="bar", x_column="region", y_column=y_column), TEXT_ONLY_SCHEMA
            )
            assert result.is_valid

    def test_validation_is_pure(self):
        chart = config(chart_type="scatter", x_column="units", y_column="region")
        first = validate_chart_config(chart, SCHEMA)
        second = validate_chart_config(chart, SCHEMA)
        assert first == second


class TestPredicates:
    def test_requires_y_axis(self):
        assert requires_y_axis("scatter")
        assert requires_y_axis("heatmap")
        assert not requires_y_axis("bar")

    def test_requires_numeric_y(self):
        assert requires_numeric_y("scatter", "count")
        assert requires_numeric_y("bar", "sum")
        assert requires_numeric_y("line", "avg")
        assert not requires_numeric_y("bar", "count")
        assert not requires_numeric_y("area", "min")


def test_unknown_chart_type_rejected_by_model():
    with pytest.raises(ValueError):
        ChartConfig(chart_type="pie", x_column="region")
