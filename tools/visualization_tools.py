"""
Visualization Tools
可视化工具

Maps a result set and a requested chart kind to a Chart.js configuration and
wraps it in a self-contained HTML document with a preview table.
"""

import html
import json
from collections import OrderedDict
from typing import Dict, Any, List, Optional, Tuple

import structlog

from error_handling import DataProcessingError, ErrorCategory, log_tool_error
from tools.tabular import (
    BOOLEAN, NUMERIC, STRING,
    cell, column_names, infer_column_types, js_string, load_rows, to_number,
)
from tools.tool_result import ToolResult

logger = structlog.get_logger()

SUPPORTED_CHART_TYPES = ("bar", "line", "pie", "scatter")
DEFAULT_CHART_TYPE = "bar"
DEFAULT_TITLE = "Data Visualization"
MAX_SERIES_ROWS = 20
TABLE_PREVIEW_ROWS = 10
CHART_JS_CDN = "https://cdn.jsdelivr.net/npm/chart.js"

PIE_COLORS = [
    "rgba(255, 99, 132, 0.7)",
    "rgba(54, 162, 235, 0.7)",
    "rgba(255, 206, 86, 0.7)",
    "rgba(75, 192, 192, 0.7)",
    "rgba(153, 102, 255, 0.7)",
    "rgba(255, 159, 64, 0.7)",
    "rgba(199, 199, 199, 0.7)",
    "rgba(83, 102, 255, 0.7)",
    "rgba(40, 159, 64, 0.7)",
    "rgba(210, 199, 199, 0.7)",
]
SERIES_COLOR = "rgba(75, 192, 192, 0.7)"
SERIES_BORDER_COLOR = "rgba(75, 192, 192, 1)"


def normalize_chart_type(requested: Optional[str]) -> str:
    chart_type = (requested or DEFAULT_CHART_TYPE).lower()
    return chart_type if chart_type in SUPPORTED_CHART_TYPES else DEFAULT_CHART_TYPE


def select_axes(columns: List[str], column_types: Dict[str, str]) -> Tuple[str, str]:
    """Pick the category (x) and value (y) columns"""
    numeric_columns = [col for col in columns if column_types[col] == NUMERIC]
    categorical_columns = [col for col in columns if column_types[col] in (STRING, BOOLEAN)]

    if categorical_columns:
        x_column = categorical_columns[0]
    elif numeric_columns:
        x_column = numeric_columns[0]
    else:
        x_column = columns[0]

    if numeric_columns:
        y_column = numeric_columns[0]
        if y_column == x_column and len(numeric_columns) > 1:
            y_column = numeric_columns[1]
    else:
        y_column = columns[1] if len(columns) > 1 else columns[0]

    return x_column, y_column


class ChartGenerator:
    """图表生成器 - 主要的图表生成协调器"""

    def __init__(self):
        self.chart_js = ChartJsGenerator()
        self.table = NativeHTMLGenerator()

    def visualize(self, data: Any, chart_type: Optional[str] = None, title: Optional[str] = None) -> ToolResult:
        """Entry point for the generate_visualization tool"""
        try:
            rows = load_rows(data)
            chart_spec = self.build_chart_spec(rows, chart_type, title)
            return ToolResult.ok(self.render_document(rows, chart_spec))

        except DataProcessingError as e:
            log_tool_error("generate_visualization", e, {"chart_type": chart_type})
            if e.category == ErrorCategory.DATA_EMPTY:
                return ToolResult.error(e.message)
            return ToolResult.error(f"Error generating visualization: {e.message}")

        except Exception as e:
            log_tool_error("generate_visualization", e, {"chart_type": chart_type})
            return ToolResult.error(f"Error generating visualization: {e}")

    def build_chart_spec(self, rows: List[Any], chart_type: Optional[str] = None, title: Optional[str] = None) -> Dict[str, Any]:
        """生成图表规格"""
        columns = column_names(rows)
        if not columns:
            raise DataProcessingError("the first row has no columns to plot")

        column_types = infer_column_types(rows)
        x_column, y_column = select_axes(columns, column_types)
        has_numeric = any(tag == NUMERIC for tag in column_types.values())

        kind = normalize_chart_type(chart_type)
        chart_title = title or DEFAULT_TITLE

        spec = self.chart_js.create_chart_spec(kind, rows, x_column, y_column, has_numeric, chart_title)
        spec.update({
            "title": chart_title,
            "columns": columns,
            "x_column": x_column,
            "y_column": y_column,
        })

        logger.info("Chart spec generated", chart_type=kind, x_column=x_column, y_column=y_column, rows=len(rows))
        return spec

    def render_document(self, rows: List[Any], chart_spec: Dict[str, Any]) -> str:
        """Full HTML page: chart canvas, preview table and the Chart.js call"""
        title = html.escape(chart_spec["title"])
        table_html = self.table.generate_html_code(rows, chart_spec["columns"], TABLE_PREVIEW_ROWS)
        script = self.chart_js.generate_js_code(chart_spec)

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <script src="{CHART_JS_CDN}"></script>
  <style>
    body {{ font-family: Arial, sans-serif; margin: 20px; }}
    .container {{ max-width: 800px; margin: 0 auto; }}
    .chart-container {{ position: relative; height: 60vh; width: 100%; }}
    h1 {{ text-align: center; color: #333; }}
    .data-table {{ margin-top: 30px; width: 100%; border-collapse: collapse; }}
    .data-table th, .data-table td {{ border: 1px solid #ddd; padding: 8px; text-align: left; }}
    .data-table th {{ background-color: #f2f2f2; }}
    .data-table tr:nth-child(even) {{ background-color: #f9f9f9; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>{title}</h1>
    <div class="chart-container">
      <canvas id="myChart"></canvas>
    </div>

    <h2>Data Table (First {TABLE_PREVIEW_ROWS} Rows)</h2>
{table_html}
  </div>

  <script>
{script}
  </script>
</body>
</html>
"""


class ChartJsGenerator:
    """Chart.js图表生成器"""

    def create_chart_spec(self,
                          chart_type: str,
                          rows: List[Any],
                          x_column: str,
                          y_column: str,
                          has_numeric: bool,
                          title: str) -> Dict[str, Any]:
        if chart_type == "pie":
            data = self._create_pie_chart_data(rows, x_column, y_column, has_numeric)
            options = self._base_options(title)
        elif chart_type == "scatter":
            data = self._create_scatter_plot_data(rows, x_column, y_column)
            options = self._base_options(title)
            options["scales"] = {
                "x": {"title": {"display": True, "text": x_column}},
                "y": {"title": {"display": True, "text": y_column}},
            }
        else:
            data = self._create_series_data(rows, x_column, y_column)
            options = self._base_options(title)
            options["scales"] = {"y": {"beginAtZero": True}}

        return {"chart_type": chart_type, "data": data, "options": options}

    def _base_options(self, title: str) -> Dict[str, Any]:
        return {
            "responsive": True,
            "plugins": {
                "legend": {"position": "top"},
                "title": {"display": True, "text": title},
            },
        }

    def _create_pie_chart_data(self, rows: List[Any], x_column: str, y_column: str, has_numeric: bool) -> Dict[str, Any]:
        """Sum y per category, or count rows when nothing is numeric"""
        aggregated = OrderedDict()
        for row in rows:
            key = js_string(cell(row, x_column))
            increment = to_number(cell(row, y_column)) if has_numeric else 1
            aggregated[key] = aggregated.get(key, 0) + increment

        return {
            "labels": list(aggregated.keys()),
            "datasets": [{
                "data": list(aggregated.values()),
                "backgroundColor": PIE_COLORS,
            }],
        }

    def _create_scatter_plot_data(self, rows: List[Any], x_column: str, y_column: str) -> Dict[str, Any]:
        """One point per row; non-numeric values become NaN and are kept"""
        points = [
            {"x": to_number(cell(row, x_column)), "y": to_number(cell(row, y_column))}
            for row in rows
        ]
        return {
            "datasets": [{
                "label": f"{y_column} vs {x_column}",
                "data": points,
                "backgroundColor": SERIES_COLOR,
            }],
        }

    def _create_series_data(self, rows: List[Any], x_column: str, y_column: str) -> Dict[str, Any]:
        """Bar and line charts keep the first rows only for readability"""
        limited_rows = rows[:MAX_SERIES_ROWS]
        return {
            "labels": [cell(row, x_column) for row in limited_rows],
            "datasets": [{
                "label": y_column,
                "data": [cell(row, y_column) for row in limited_rows],
                "backgroundColor": SERIES_COLOR,
                "borderColor": SERIES_BORDER_COLOR,
                "borderWidth": 1,
            }],
        }

    def generate_js_code(self, spec: Dict[str, Any]) -> str:
        """生成Chart.js JavaScript代码"""
        return (
            f"    const chartData = {_script_json(spec['data'])};\n"
            f"    const chartOptions = {_script_json(spec['options'])};\n"
            "    const ctx = document.getElementById('myChart').getContext('2d');\n"
            f"    new Chart(ctx, {{ type: {_script_json(spec['chart_type'])}, data: chartData, options: chartOptions }});"
        )


class NativeHTMLGenerator:
    """原生HTML表格生成器"""

    def generate_html_code(self, rows: List[Any], columns: List[str], limit: int) -> str:
        header = "".join(f"<th>{html.escape(col)}</th>" for col in columns)
        body_rows = []
        for row in rows[:limit]:
            cells = "".join(f"<td>{html.escape(js_string(cell(row, col)))}</td>" for col in columns)
            body_rows.append(f"          <tr>{cells}</tr>")

        body = "\n".join(body_rows)
        return f"""    <div class="table-container">
      <table class="data-table">
        <thead>
          <tr>{header}</tr>
        </thead>
        <tbody>
{body}
        </tbody>
      </table>
    </div>"""


def _script_json(value: Any) -> str:
    """JSON safe to inline in a <script> block; NaN stays a JS literal"""
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")
