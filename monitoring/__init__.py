# Monitoring package: logging setup and tool call tracing
from .logging_config import setup_logging
from .traceable_decorators import trace_tool_call

__all__ = [
    'setup_logging',
    'trace_tool_call'
]
