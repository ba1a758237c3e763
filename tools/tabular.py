"""
Row parsing and column sniffing shared by the summarizer and chart builder.

Column types come from the first row only. Later rows never change a
column's type tag, even when their values disagree.
"""

import json
import math
from collections import OrderedDict
from datetime import date, datetime
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Any, Dict, List

from error_handling import DataProcessingError, ErrorCategory

NUMERIC = "numeric"
STRING = "string"
BOOLEAN = "boolean"
DATE = "date"
UNKNOWN = "unknown"

EMPTY_DATA_MESSAGE = "The provided data is empty or not in the expected format (array of objects)."

TWO_PLACES = Decimal("0.01")
_ROUNDING_CONTEXT = Context(prec=400)


def load_rows(data: Any) -> List[Any]:
    """Parse a JSON array of row records; raise DataProcessingError otherwise"""
    if not isinstance(data, (str, bytes, bytearray)):
        raise DataProcessingError("data must be a JSON string")

    try:
        rows = json.loads(data, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise DataProcessingError(str(e)) from e

    if not isinstance(rows, list) or len(rows) == 0:
        raise DataProcessingError(EMPTY_DATA_MESSAGE, ErrorCategory.DATA_EMPTY)

    return rows


def _reject_constant(name: str):
    raise DataProcessingError(f"{name} is not a valid JSON value")


def column_names(rows: List[Any]) -> List[str]:
    first_row = rows[0] if rows else None
    return list(first_row.keys()) if isinstance(first_row, dict) else []


def cell(row: Any, column: str) -> Any:
    return row.get(column) if isinstance(row, dict) else None


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def infer_column_type(value: Any) -> str:
    if is_number(value):
        return NUMERIC
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, str):
        return STRING
    if isinstance(value, (date, datetime)):
        return DATE
    return UNKNOWN


def infer_column_types(rows: List[Any]) -> Dict[str, str]:
    """Type tag per column, from the first row's values"""
    first_row = rows[0]
    return OrderedDict((col, infer_column_type(first_row[col])) for col in column_names(rows))


def numeric_values(rows: List[Any], column: str) -> List[float]:
    """Non-null, non-NaN numbers of a column across all rows"""
    values = []
    for row in rows:
        value = cell(row, column)
        if is_number(value) and not math.isnan(value):
            values.append(value)
    return values


def js_string(value: Any) -> str:
    """String form a browser would show for a JSON scalar"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


def to_number(value: Any) -> float:
    """Numeric coercion with NaN for anything that does not parse"""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        if "_" in text or text.lower().lstrip("+-") in ("inf", "nan"):
            return float("nan")
        try:
            return float(text)
        except ValueError:
            return float("nan")
    return float("nan")


def format_fixed(value: Any) -> str:
    """Two decimals, half-up on the shortest decimal form of the float"""
    number = float(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    rounded = Decimal(repr(number)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP, context=_ROUNDING_CONTEXT)
    if rounded == 0:
        rounded = abs(rounded)
    return f"{rounded:f}"
