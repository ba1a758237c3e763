# Traceable Decorators for tool call tracking
from functools import wraps
import time

import structlog

logger = structlog.get_logger("bigquery_mcp.tools")


def trace_tool_call(func):
    """工具调用跟踪装饰器

    Wraps ``dispatch(name, arguments)`` and logs the tool name, execution
    time and whether the result carried the error flag.
    """

    @wraps(func)
    def wrapper(self, name, arguments=None):
        start_time = time.perf_counter()

        try:
            result = func(self, name, arguments)
        except Exception as e:
            logger.error("Tool call raised",
                         tool_name=name,
                         execution_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
                         error_type=type(e).__name__,
                         error_message=str(e))
            raise

        logger.info("Tool call completed",
                    tool_name=name,
                    execution_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
                    is_error=getattr(result, "is_error", False))
        return result

    return wrapper
