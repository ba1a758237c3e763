"""Result type shared by all tool handlers."""

from dataclasses import dataclass


@dataclass
class ToolResult:
    """Text returned to the calling agent; is_error marks a recoverable business failure"""
    text: str
    is_error: bool = False

    @classmethod
    def ok(cls, text: str) -> "ToolResult":
        return cls(text=text, is_error=False)

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(text=text, is_error=True)
