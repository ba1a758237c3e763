# 错误类型定义和分类系统
from enum import Enum
from typing import Optional, Dict, Any, List
from datetime import datetime

class ErrorSeverity(Enum):
    CRITICAL = "critical"      # 启动失败，进程退出
    HIGH = "high"             # 协议级故障
    MEDIUM = "medium"         # 单次调用失败，以错误结果返回
    LOW = "low"              # 调用方输入问题

class ErrorCategory(Enum):
    # Startup Errors
    CONFIGURATION = "configuration"
    CREDENTIALS = "credentials"

    # BigQuery Errors
    BIGQUERY_CONNECTION = "bigquery_connection"
    BIGQUERY_QUOTA = "bigquery_quota"
    BIGQUERY_SYNTAX = "bigquery_syntax"
    BIGQUERY_PERMISSION = "bigquery_permission"
    BIGQUERY_BILLING_LIMIT = "bigquery_billing_limit"
    BIGQUERY_EXECUTION = "bigquery_execution"

    # Query Policy Errors
    READ_ONLY_VIOLATION = "read_only_violation"
    MISSING_DATASET = "missing_dataset"

    # Data Errors
    DATA_EMPTY = "data_empty"
    DATA_INVALID_FORMAT = "data_invalid_format"

    # Protocol Errors
    UNKNOWN_TOOL = "unknown_tool"
    INVALID_RESOURCE = "invalid_resource"

class DatabaseAnalystError(Exception):
    """Base exception for the BigQuery MCP server"""

    def __init__(self,
                 message: str,
                 category: ErrorCategory,
                 severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                 context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        self.timestamp = datetime.now().isoformat()

# Specific Error Classes
class ConfigurationError(DatabaseAnalystError):
    """Fatal startup error: bad project id or service account key file"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.CONFIGURATION, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message, category, **kwargs)

class QueryPolicyError(DatabaseAnalystError):
    """SQL rejected by the read-only guard"""

    def __init__(self, message: str = "Only READ operations are allowed", **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        super().__init__(message, ErrorCategory.READ_ONLY_VIOLATION, **kwargs)

class UsageError(DatabaseAnalystError):
    """Caller must change the request, e.g. qualify INFORMATION_SCHEMA with a dataset"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.MISSING_DATASET, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        super().__init__(message, category, **kwargs)

class DataProcessingError(DatabaseAnalystError):
    """Row data handed to a tool is unusable"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.DATA_INVALID_FORMAT, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        super().__init__(message, category, **kwargs)

class BigQueryError(DatabaseAnalystError):
    """Warehouse-side failure"""
    pass

class UnknownToolError(DatabaseAnalystError):
    """Tool name not registered with the dispatcher"""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}",
                         ErrorCategory.UNKNOWN_TOOL,
                         severity=ErrorSeverity.HIGH,
                         context={"tool_name": tool_name})
        self.tool_name = tool_name
