# 错误处理模块初始化
from .error_types import (
    ErrorSeverity,
    ErrorCategory,
    DatabaseAnalystError,
    ConfigurationError,
    QueryPolicyError,
    UsageError,
    DataProcessingError,
    BigQueryError,
    UnknownToolError
)

from .error_detection import ErrorDetector
from .error_logging import error_logger, log_tool_error

__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "DatabaseAnalystError",
    "ConfigurationError",
    "QueryPolicyError",
    "UsageError",
    "DataProcessingError",
    "BigQueryError",
    "UnknownToolError",
    "ErrorDetector",
    "error_logger",
    "log_tool_error"
]
