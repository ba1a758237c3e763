"""
Result Processing Tools
结果处理工具

Heuristic summaries of an already-fetched result set: per-column type tags,
numeric statistics, categorical frequencies and an optional focused
section (trends, outliers or distribution).
"""

from collections import Counter
from typing import Dict, Any, List, Optional

import numpy as np
import pandas as pd
import structlog

from error_handling import DataProcessingError, ErrorCategory, log_tool_error
from tools.tabular import (
    BOOLEAN, NUMERIC, STRING,
    cell, format_fixed, infer_column_types, js_string, load_rows, numeric_values,
)
from tools.tool_result import ToolResult

logger = structlog.get_logger()

FOCUS_TRENDS = "trends"
FOCUS_OUTLIERS = "outliers"
FOCUS_DISTRIBUTION = "distribution"
HISTOGRAM_BINS = 5


class ResultProcessor:
    """结果处理器 - 生成查询结果摘要"""

    def __init__(self, max_categorical_columns: int = 5, top_value_count: int = 5, large_dataset_rows: int = 1000):
        self.max_categorical_columns = max_categorical_columns
        self.top_value_count = top_value_count
        self.large_dataset_rows = large_dataset_rows

    def analyze(self, data: Any, focus: Optional[str] = None) -> ToolResult:
        """Entry point for the analyze_results tool"""
        try:
            rows = load_rows(data)
            summary = self.summarize(rows, focus)
            return ToolResult.ok(self.render_report(summary))

        except DataProcessingError as e:
            log_tool_error("analyze_results", e, {"focus": focus})
            if e.category == ErrorCategory.DATA_EMPTY:
                return ToolResult.error(e.message)
            return ToolResult.error(f"Error analyzing data: {e.message}")

        except Exception as e:
            log_tool_error("analyze_results", e, {"focus": focus})
            return ToolResult.error(f"Error analyzing data: {e}")

    def summarize(self, rows: List[Any], focus: Optional[str] = None) -> Dict[str, Any]:
        """生成综合摘要"""
        if not rows:
            raise DataProcessingError("no rows to summarize", ErrorCategory.DATA_EMPTY)

        column_types = infer_column_types(rows)
        numeric_columns = [col for col, tag in column_types.items() if tag == NUMERIC]
        categorical_columns = [col for col, tag in column_types.items() if tag in (STRING, BOOLEAN)]

        statistics = {}
        for col in numeric_columns:
            values = numeric_values(rows, col)
            if values:
                statistics[col] = self._numeric_statistics(values)

        categorical = {}
        for col in categorical_columns[:self.max_categorical_columns]:
            categorical[col] = self._categorical_summary(rows, col)

        summary = {
            "row_count": len(rows),
            "columns": list(column_types.keys()),
            "column_types": dict(column_types),
            "numeric_columns": numeric_columns,
            "statistics": statistics,
            "categorical": categorical,
            "focus": focus,
            "focused": self._focused_analysis(rows, focus, numeric_columns, statistics),
        }

        logger.debug("Summarized result set",
                     row_count=summary["row_count"],
                     numeric_columns=len(numeric_columns),
                     categorical_columns=len(categorical))
        return summary

    def _numeric_statistics(self, values: List[float]) -> Dict[str, float]:
        series = pd.Series(values, dtype="float64")
        total = _left_sum(series.to_numpy())
        return {
            "min": float(series.min()),
            "max": float(series.max()),
            "avg": total / len(values),
            "median": float(series.median()),
            "sum": total,
        }

    def _categorical_summary(self, rows: List[Any], column: str) -> Dict[str, Any]:
        """Frequency of non-null values; ties keep first-occurrence order"""
        counts = Counter()
        for row in rows:
            value = cell(row, column)
            if value is not None:
                counts[js_string(value)] += 1

        row_count = len(rows)
        top_values = [
            {
                "value": value,
                "count": count,
                "percentage": format_fixed(count / row_count * 100) + "%",
            }
            for value, count in counts.most_common(self.top_value_count)
        ]
        return {"distinct_count": len(counts), "top_values": top_values}

    def _focused_analysis(self,
                          rows: List[Any],
                          focus: Optional[str],
                          numeric_columns: List[str],
                          statistics: Dict[str, Dict[str, float]]) -> Optional[Dict[str, Any]]:
        if not focus or not numeric_columns:
            return None

        focus_key = focus.lower()
        columns = [col for col in numeric_columns if col in statistics]

        if focus_key == FOCUS_TRENDS:
            return {
                "kind": FOCUS_TRENDS,
                "columns": {
                    col: {
                        "range": statistics[col]["max"] - statistics[col]["min"],
                        "min": statistics[col]["min"],
                        "max": statistics[col]["max"],
                    }
                    for col in columns
                },
            }

        if focus_key == FOCUS_OUTLIERS:
            return {
                "kind": FOCUS_OUTLIERS,
                "columns": {
                    col: {"outliers": self._count_outliers(numeric_values(rows, col), statistics[col]["avg"])}
                    for col in columns
                },
            }

        if focus_key == FOCUS_DISTRIBUTION:
            return {
                "kind": FOCUS_DISTRIBUTION,
                "columns": {col: {"bins": self._histogram(numeric_values(rows, col))} for col in columns},
            }

        return None

    def _count_outliers(self, values: List[float], mean: float) -> int:
        """Values more than two population standard deviations from the mean"""
        deviations = pd.Series(values, dtype="float64") - mean
        std_dev = np.sqrt(_left_sum(np.square(deviations.to_numpy())) / len(values))
        return int((deviations.abs() > 2 * std_dev).sum())

    def _histogram(self, values: List[float]) -> List[int]:
        """5 equal-width bins; the top edge is clamped into the last bin"""
        arr = np.asarray(values, dtype="float64")
        low, high = arr.min(), arr.max()
        width = (high - low) / HISTOGRAM_BINS

        if width == 0:
            return [len(arr)] + [0] * (HISTOGRAM_BINS - 1)

        indexes = np.minimum(np.floor((arr - low) / width), HISTOGRAM_BINS - 1).astype(int)
        return np.bincount(indexes, minlength=HISTOGRAM_BINS).tolist()

    def render_report(self, summary: Dict[str, Any]) -> str:
        """Markdown report for the calling agent"""
        row_count = summary["row_count"]
        statistics = summary["statistics"]
        categorical = summary["categorical"]

        lines = [
            "## Data Analysis Summary",
            "",
            "**General Information:**",
            f"- Total rows: {row_count}",
            f"- Total columns: {len(summary['columns'])}",
            "",
            "**Column Types:**",
        ]
        lines.extend(f"- {col}: {tag}" for col, tag in summary["column_types"].items())

        if summary["numeric_columns"] and statistics:
            lines.extend(["", "**Numeric Column Statistics:**"])
            for col, stats in statistics.items():
                lines.extend([
                    "",
                    f"### {col}",
                    f"- Minimum: {format_fixed(stats['min'])}",
                    f"- Maximum: {format_fixed(stats['max'])}",
                    f"- Average: {format_fixed(stats['avg'])}",
                    f"- Median: {format_fixed(stats['median'])}",
                    f"- Sum: {format_fixed(stats['sum'])}",
                ])

        if categorical:
            lines.extend(["", "**Categorical Column Analysis:**"])
            for col, analysis in categorical.items():
                lines.extend([
                    "",
                    f"### {col}",
                    f"- Distinct values: {analysis['distinct_count']}",
                    "- Top values:",
                ])
                lines.extend(
                    f'  - "{v["value"]}": {v["count"]} ({v["percentage"]})' for v in analysis["top_values"]
                )

        focused = summary["focused"]
        if focused:
            lines.extend(["", f"**Focused Analysis ({summary['focus']}):**"])
            lines.extend(self._render_focused(focused))

        lines.extend(["", "**Key Insights:**"])
        size_label = "Large" if row_count > self.large_dataset_rows else "Small"
        lines.append(f"- {size_label} dataset with {row_count} rows")

        first_numeric = next((col for col in summary["numeric_columns"] if col in statistics), None)
        if first_numeric:
            stats = statistics[first_numeric]
            width = "wide" if stats["max"] > stats["min"] * 10 else "narrow"
            lines.append(f"- Numeric columns show {width} value ranges")

        if categorical:
            first_categorical = next(iter(categorical))
            lines.append(
                f'- The "{first_categorical}" column has {categorical[first_categorical]["distinct_count"]} distinct values'
            )

        return "\n".join(lines) + "\n"

    def _render_focused(self, focused: Dict[str, Any]) -> List[str]:
        kind = focused["kind"]
        columns = focused["columns"]

        if kind == FOCUS_TRENDS:
            lines = ["Trend Analysis:"]
            lines.extend(
                f"- {col}: Range of {format_fixed(info['range'])} from {format_fixed(info['min'])} to {format_fixed(info['max'])}"
                for col, info in columns.items()
            )
        elif kind == FOCUS_OUTLIERS:
            lines = ["Outlier Detection:"]
            lines.extend(
                f"- {col}: Found {info['outliers']} potential outliers "
                "(values outside 2 standard deviations from the mean)"
                for col, info in columns.items()
            )
        else:
            lines = ["Distribution Analysis:"]
            lines.extend(
                f"- {col}: Distribution across 5 equal bins: [{', '.join(str(b) for b in info['bins'])}]"
                for col, info in columns.items()
            )
        return lines


def _left_sum(values: np.ndarray) -> float:
    """Sequential left-to-right sum; numpy's pairwise sum can differ in the last ulp"""
    if values.size == 0:
        return 0.0
    return float(np.add.accumulate(values)[-1])
