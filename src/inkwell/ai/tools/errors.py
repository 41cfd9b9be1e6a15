"""Standardized error types for document tools.

Every error serialises to the JSON shape fed back to the model as an
``is_error`` tool result, so the model can read what went wrong and retry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------

class ErrorCode:
    """Constants for error codes used in tool responses."""

    INVALID_INPUT = "invalid_input"
    UNKNOWN_TOOL = "unknown_tool"
    EXECUTION_FAILED = "execution_failed"
    POSITION_OUT_OF_BOUNDS = "position_out_of_bounds"
    TEXT_NOT_FOUND = "text_not_found"
    AMBIGUOUS_TEXT = "ambiguous_text"
    TIMEOUT = "timeout"
    INTERNAL_ERROR = "internal_error"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass
class ToolError(Exception):
    """Base exception class for all tool errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
        suggestion: Actionable guidance for recovery.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for JSON tool responses."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# -----------------------------------------------------------------------------
# Concrete Errors
# -----------------------------------------------------------------------------

@dataclass
class ToolValidationError(ToolError):
    """Tool input failed schema or per-tool validation; nothing was mutated."""

    error_code: str = field(default=ErrorCode.INVALID_INPUT)
    message: str = field(default="Invalid tool input")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Fix the named field and call the tool again")

    field_name: str = field(default="")

    def __post_init__(self) -> None:
        ToolError.__post_init__(self)
        if self.field_name:
            self.details.setdefault("field", self.field_name)


@dataclass
class UnknownToolError(ToolError):
    error_code: str = field(default=ErrorCode.UNKNOWN_TOOL)
    message: str = field(default="Unknown tool")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Use one of the tools listed in the request")

    tool_name: str = field(default="")

    def __post_init__(self) -> None:
        if self.tool_name and self.message == "Unknown tool":
            self.message = f"Unknown tool: {self.tool_name}"
        ToolError.__post_init__(self)
        if self.tool_name:
            self.details.setdefault("tool", self.tool_name)


@dataclass
class ToolExecutionError(ToolError):
    """Handler-level failure after the input passed validation."""

    error_code: str = field(default=ErrorCode.EXECUTION_FAILED)
    message: str = field(default="Tool execution failed")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="")


@dataclass
class ToolTimeoutError(ToolExecutionError):
    error_code: str = field(default=ErrorCode.TIMEOUT)
    message: str = field(default="Tool execution timed out")
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = field(default="Retry with a smaller request")

    timeout_seconds: float | None = field(default=None)

    def __post_init__(self) -> None:
        ToolError.__post_init__(self)
        if self.timeout_seconds is not None:
            self.details.setdefault("timeout_seconds", self.timeout_seconds)


__all__ = [
    "ErrorCode",
    "ToolError",
    "ToolValidationError",
    "UnknownToolError",
    "ToolExecutionError",
    "ToolTimeoutError",
]
