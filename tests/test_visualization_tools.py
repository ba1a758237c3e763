"""Tests for chart spec generation and the HTML document."""

import json
import math

import pytest

from tools.tabular import EMPTY_DATA_MESSAGE
from tools.visualization_tools import (
    ChartGenerator,
    DEFAULT_TITLE,
    normalize_chart_type,
    select_axes,
)


@pytest.fixture
def charts():
    return ChartGenerator()


class TestAxisSelection:

    def test_first_categorical_is_x_and_first_numeric_is_y(self):
        columns = ["id", "region", "total"]
        types = {"id": "numeric", "region": "string", "total": "numeric"}
        assert select_axes(columns, types) == ("region", "id")

    def test_all_numeric_uses_first_two(self):
        assert select_axes(["a", "b"], {"a": "numeric", "b": "numeric"}) == ("a", "b")

    def test_single_numeric_column_plots_against_itself(self):
        assert select_axes(["a"], {"a": "numeric"}) == ("a", "a")

    def test_no_numeric_falls_back_to_second_column(self):
        assert select_axes(["k", "v"], {"k": "string", "v": "string"}) == ("k", "v")

    def test_unknown_only_columns(self):
        assert select_axes(["x"], {"x": "unknown"}) == ("x", "x")


class TestChartTypes:

    @pytest.mark.parametrize("requested, expected", [
        (None, "bar"),
        ("", "bar"),
        ("LINE", "line"),
        ("Pie", "pie"),
        ("scatter", "scatter"),
        ("heatmap", "bar"),
    ])
    def test_normalize(self, requested, expected):
        assert normalize_chart_type(requested) == expected

    def test_unknown_type_renders_as_bar(self, charts):
        spec = charts.build_chart_spec([{"k": "a", "v": 1}], "radar")
        assert spec["chart_type"] == "bar"
        assert spec["options"]["scales"] == {"y": {"beginAtZero": True}}

    def test_default_title(self, charts):
        spec = charts.build_chart_spec([{"k": "a", "v": 1}])
        assert spec["title"] == DEFAULT_TITLE
        assert spec["options"]["plugins"]["title"]["text"] == DEFAULT_TITLE


class TestPieChart:

    def test_sums_values_per_category(self, charts):
        rows = [{"k": "a", "v": 1}, {"k": "b", "v": 5}, {"k": "a", "v": 2}]
        spec = charts.build_chart_spec(rows, "pie")
        assert spec["data"]["labels"] == ["a", "b"]
        assert spec["data"]["datasets"][0]["data"] == [3, 5]

    def test_counts_rows_without_numeric_columns(self, charts):
        rows = [{"k": "a"}, {"k": "b"}, {"k": "a"}]
        spec = charts.build_chart_spec(rows, "pie")
        assert spec["data"]["datasets"][0]["data"] == [2, 1]

    def test_pie_has_no_scales(self, charts):
        spec = charts.build_chart_spec([{"k": "a", "v": 1}], "pie")
        assert "scales" not in spec["options"]

    def test_pie_uses_every_row(self, charts):
        rows = [{"k": f"c{i}", "v": 1} for i in range(30)]
        spec = charts.build_chart_spec(rows, "pie")
        assert len(spec["data"]["labels"]) == 30


class TestSeriesCharts:

    @pytest.mark.parametrize("kind", ["bar", "line"])
    def test_truncates_to_first_twenty_rows(self, charts, kind):
        rows = [{"k": f"r{i}", "v": i} for i in range(25)]
        spec = charts.build_chart_spec(rows, kind)
        assert spec["data"]["labels"] == [f"r{i}" for i in range(20)]
        assert spec["data"]["datasets"][0]["data"] == list(range(20))
        assert spec["data"]["datasets"][0]["label"] == "v"


class TestScatterChart:

    def test_points_and_axis_titles(self, charts):
        rows = [{"x": 1, "y": 2}, {"x": 3, "y": 4}]
        spec = charts.build_chart_spec(rows, "scatter")
        points = spec["data"]["datasets"][0]["data"]
        assert points == [{"x": 1, "y": 2}, {"x": 3, "y": 4}]
        assert spec["data"]["datasets"][0]["label"] == "y vs x"
        assert spec["options"]["scales"]["x"]["title"]["text"] == "x"

    def test_non_numeric_values_become_nan_points(self, charts):
        rows = [{"x": 1, "y": 2}, {"x": "abc", "y": "7"}]
        points = charts.build_chart_spec(rows, "scatter")["data"]["datasets"][0]["data"]
        assert len(points) == 2
        assert math.isnan(points[1]["x"])
        assert points[1]["y"] == 7.0


class TestHtmlDocument:

    def test_document_structure(self, charts):
        result = charts.visualize(json.dumps([{"k": "a", "v": 1}]), "bar", "Sales")
        assert not result.is_error
        assert result.text.startswith("<!DOCTYPE html>")
        assert "<title>Sales</title>" in result.text
        assert "https://cdn.jsdelivr.net/npm/chart.js" in result.text
        assert '<canvas id="myChart"></canvas>' in result.text
        assert 'type: "bar"' in result.text

    def test_title_is_escaped(self, charts):
        result = charts.visualize(json.dumps([{"k": "a", "v": 1}]), "bar", "<b>Q&A</b>")
        assert "<title>&lt;b&gt;Q&amp;A&lt;/b&gt;</title>" in result.text
        assert "<b>Q&A</b>" not in result.text.split("<script>")[0]

    def test_table_shows_first_ten_rows(self, charts):
        rows = [{"k": f"row{i}", "v": i} for i in range(15)]
        result = charts.visualize(json.dumps(rows))
        assert "<td>row9</td>" in result.text
        assert "<td>row10</td>" not in result.text
        assert "<th>k</th><th>v</th>" in result.text

    def test_cells_are_escaped(self, charts):
        result = charts.visualize(json.dumps([{"k": "<script>", "v": 1}]))
        assert "<td>&lt;script&gt;</td>" in result.text

    def test_script_payload_cannot_close_the_script_block(self, charts):
        result = charts.visualize(json.dumps([{"k": "</script>", "v": 1}]))
        script = result.text.split("<script>\n", 1)[1]
        assert "<\\/script>" in script


class TestInvalidInput:

    @pytest.mark.parametrize("data", ["[]", "{}", "null"])
    def test_empty_or_non_array(self, charts, data):
        result = charts.visualize(data)
        assert result.is_error
        assert result.text == EMPTY_DATA_MESSAGE

    def test_malformed_json(self, charts):
        result = charts.visualize("not json")
        assert result.is_error
        assert result.text.startswith("Error generating visualization:")

    def test_rows_without_columns(self, charts):
        result = charts.visualize("[1, 2, 3]")
        assert result.is_error
        assert result.text.startswith("Error generating visualization:")


class TestNonStandardJsonLiterals:

    @pytest.mark.parametrize("data", [
        '[{"k": "x", "v": NaN}]',
        '[{"k": "x", "v": Infinity}]',
        '[{"k": "x", "v": -Infinity}]',
    ])
    def test_rejected_as_invalid_data(self, charts, data):
        result = charts.visualize(data, "pie")
        assert result.is_error
        assert result.text.startswith("Error generating visualization:")
        assert "<!DOCTYPE html>" not in result.text
