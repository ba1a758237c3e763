# 错误检测和分类系统
import re
from typing import Tuple, Dict, Any
from .error_types import ErrorCategory, DatabaseAnalystError

# Ordered from most to least specific; the first category with a hit wins
WAREHOUSE_ERROR_PATTERNS = (
    (ErrorCategory.BIGQUERY_BILLING_LIMIT, (
        r"query exceeded limit for bytes billed",
        r"bytes billed.*exceed",
        r"maximum_bytes_billed",
    )),
    (ErrorCategory.BIGQUERY_QUOTA, (
        r"quota.*exceeded",
        r"rate limit.*exceeded",
        r"too many requests",
    )),
    (ErrorCategory.BIGQUERY_PERMISSION, (
        r"access denied",
        r"permission denied",
        r"does not have .*permission",
        r"forbidden",
        r"unauthorized",
    )),
    (ErrorCategory.BIGQUERY_SYNTAX, (
        r"syntax error",
        r"unrecognized name",
        r"not found: (table|dataset)",
        r"invalid.*query",
    )),
    (ErrorCategory.BIGQUERY_CONNECTION, (
        r"connection.*(refused|reset|aborted)",
        r"timed out",
        r"service unavailable",
    )),
)


class ErrorDetector:
    """Classifies warehouse error messages so per-call faults are logged with a category"""

    def __init__(self, patterns=WAREHOUSE_ERROR_PATTERNS):
        self.compiled_patterns = [
            (category, [re.compile(p, re.IGNORECASE) for p in category_patterns])
            for category, category_patterns in patterns
        ]

    def detect_error_category(self, error_message: str) -> Tuple[ErrorCategory, float]:
        """Return the matching category and how many of its patterns hit, as a 0-1 score"""
        for category, patterns in self.compiled_patterns:
            hits = sum(1 for pattern in patterns if pattern.search(error_message))
            if hits:
                return category, min(1.0, 0.6 + 0.2 * hits)

        return ErrorCategory.BIGQUERY_EXECUTION, 0.5

    def extract_error_details(self, error: Exception) -> Dict[str, Any]:
        """Flatten an exception into loggable fields"""
        if isinstance(error, DatabaseAnalystError):
            category, confidence = error.category, 1.0
        else:
            category, confidence = self.detect_error_category(str(error))

        details = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "error_category": category.value,
            "category_confidence": confidence,
        }

        # google.api_core exceptions carry an HTTP status code
        code = getattr(error, "code", None)
        if code is not None:
            details["error_code"] = code

        return details
