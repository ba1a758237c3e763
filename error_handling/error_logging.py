# 错误日志记录
from typing import Dict, Any, Optional
import structlog

from .error_detection import ErrorDetector
from .error_types import DatabaseAnalystError, ErrorSeverity

logger = structlog.get_logger("bigquery_mcp.errors")


class ErrorLogger:
    """Structured logging for per-call faults that are returned to the caller as error results"""

    def __init__(self):
        self.detector = ErrorDetector()

    def log_tool_error(self,
                       tool_name: str,
                       error: Exception,
                       context: Optional[Dict[str, Any]] = None):
        """记录带上下文的错误"""

        details = self.detector.extract_error_details(error)
        severity = error.severity if isinstance(error, DatabaseAnalystError) else ErrorSeverity.MEDIUM

        log_entry = {
            "tool_name": tool_name,
            "severity": severity.value,
            "additional_context": self._sanitize_context(context),
            **details,
        }
        if isinstance(error, DatabaseAnalystError) and error.recovery_suggestions:
            log_entry["recovery_suggestions"] = error.recovery_suggestions

        if severity == ErrorSeverity.CRITICAL:
            logger.critical("Tool call failed", **log_entry)
        elif severity == ErrorSeverity.HIGH:
            logger.error("Tool call failed", **log_entry)
        elif severity == ErrorSeverity.MEDIUM:
            logger.warning("Tool call failed", **log_entry)
        else:
            logger.info("Tool call rejected", **log_entry)

        return log_entry

    def _sanitize_context(self, context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """清理上下文信息"""
        if not context:
            return {}

        sanitized = {}
        for key, value in context.items():
            if any(sensitive in key.lower() for sensitive in ['key', 'token', 'password', 'secret', 'credential']):
                sanitized[key] = "***REDACTED***"
            elif isinstance(value, str) and len(value) > 500:
                sanitized[key] = value[:500] + "..."
            else:
                sanitized[key] = value

        return sanitized


# Global error logger instance
error_logger = ErrorLogger()

def log_tool_error(tool_name: str, error: Exception, context: Optional[Dict[str, Any]] = None):
    """全局错误记录函数"""
    return error_logger.log_tool_error(tool_name, error, context)
