"""
Read-only Query Gateway
只读查询网关

Validates a statement, qualifies INFORMATION_SCHEMA references with the
configured project, executes it through the warehouse client and returns
the rows as pretty-printed JSON.
"""

import base64
import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import structlog

from error_handling import DatabaseAnalystError, UsageError, ErrorCategory, log_tool_error
from tools.sql_guard import ensure_read_only, qualify_table_path, references_information_schema
from tools.tool_result import ToolResult

logger = structlog.get_logger()

DEFAULT_MAXIMUM_BYTES_BILLED = "1000000000"


def _json_default(value: Any) -> Any:
    """JSON fallback for BigQuery scalar types"""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    return str(value)


def serialize_rows(rows: List[Dict[str, Any]]) -> str:
    return json.dumps(rows, indent=2, default=_json_default, ensure_ascii=False)


def parse_maximum_bytes_billed(value: Union[str, int, None], default: str = DEFAULT_MAXIMUM_BYTES_BILLED) -> int:
    """Byte cap arrives as text from the tool call"""
    raw = default if value is None or value == "" else value
    try:
        parsed = int(str(raw).strip())
    except ValueError:
        raise UsageError(f"maximumBytesBilled must be an integer number of bytes, got {raw!r}",
                         ErrorCategory.BIGQUERY_BILLING_LIMIT)
    if parsed <= 0:
        raise UsageError(f"maximumBytesBilled must be positive, got {parsed}",
                         ErrorCategory.BIGQUERY_BILLING_LIMIT)
    return parsed


class QueryGateway:
    """Validated pass-through from the `query` tool to BigQuery"""

    def __init__(self,
                 client,
                 project_id: str,
                 location: str = "US",
                 default_maximum_bytes_billed: str = DEFAULT_MAXIMUM_BYTES_BILLED):
        self.client = client
        self.project_id = project_id
        self.location = location
        self.default_maximum_bytes_billed = default_maximum_bytes_billed

    def prepare_sql(self, sql: str) -> str:
        """Apply the read-only guard, then INFORMATION_SCHEMA qualification"""
        ensure_read_only(sql)

        if references_information_schema(sql):
            qualified = qualify_table_path(sql, self.project_id)
            if qualified != sql:
                logger.info("Qualified INFORMATION_SCHEMA reference", project_id=self.project_id)
            return qualified

        return sql

    def run_query(self, sql: Optional[str], maximum_bytes_billed: Union[str, int, None] = None) -> ToolResult:
        if not isinstance(sql, str) or not sql.strip():
            return ToolResult.error("Error executing query: sql is required")

        try:
            prepared_sql = self.prepare_sql(sql)
            byte_cap = parse_maximum_bytes_billed(maximum_bytes_billed, self.default_maximum_bytes_billed)

            rows = self.client.execute_query(
                prepared_sql,
                location=self.location,
                maximum_bytes_billed=byte_cap,
            )
            return ToolResult.ok(serialize_rows(rows))

        except DatabaseAnalystError as e:
            log_tool_error("query", e, {"sql": sql})
            return ToolResult.error(f"Error executing query: {e.message}")

        except Exception as e:
            # Warehouse failures are reported to the caller, not raised
            log_tool_error("query", e, {"sql": sql})
            return ToolResult.error(f"Error executing query: {e}")
