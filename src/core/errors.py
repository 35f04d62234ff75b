"""Error taxonomy and user-facing error classification."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class ErrorCategory(Enum):
    """Categories of failures an operation can report."""

    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    CREATION_FAILED = "creation_failed"
    UPDATE_FAILED = "update_failed"
    DELETE_FAILED = "delete_failed"
    FETCH_FAILED = "fetch_failed"
    STALE_REFERENCE = "stale_reference"
    AUTHENTICATION_FAILED = "authentication_failed"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Access errors
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_AUTHENTICATION_FAILED = "ERR_AUTHENTICATION_FAILED"

    # Record errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_STALE_REFERENCE = "ERR_STALE_REFERENCE"

    # Store errors
    ERR_CREATION_FAILED = "ERR_CREATION_FAILED"
    ERR_UPDATE_FAILED = "ERR_UPDATE_FAILED"
    ERR_DELETE_FAILED = "ERR_DELETE_FAILED"
    ERR_FETCH_FAILED = "ERR_FETCH_FAILED"
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class TaskAccessError(Exception):
    """Base class for access-control failures raised inside the service layer."""

    category: ErrorCategory = ErrorCategory.UNKNOWN


class PermissionDeniedError(TaskAccessError):
    """The actor's role or ownership does not allow the operation."""

    category = ErrorCategory.PERMISSION_DENIED


class AuthenticationError(ValueError):
    """Sign-in or session validation failed."""


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_CATEGORY_RESPONSES: dict[ErrorCategory, ErrorResponse] = {
    ErrorCategory.PERMISSION_DENIED: ErrorResponse(
        code=ErrorCode.ERR_PERMISSION_DENIED,
        message="You don't have permission for this action.",
        suggestion="Ask an admin if you think this is an error.",
        severity=ErrorSeverity.MEDIUM,
    ),
    ErrorCategory.NOT_FOUND: ErrorResponse(
        code=ErrorCode.ERR_NOT_FOUND,
        message="That item no longer exists.",
        suggestion="Refresh the list and try again.",
        severity=ErrorSeverity.LOW,
    ),
    ErrorCategory.CREATION_FAILED: ErrorResponse(
        code=ErrorCode.ERR_CREATION_FAILED,
        message="Failed to create the item.",
        suggestion="Please try again in a moment.",
        severity=ErrorSeverity.MEDIUM,
    ),
    ErrorCategory.UPDATE_FAILED: ErrorResponse(
        code=ErrorCode.ERR_UPDATE_FAILED,
        message="Failed to save your changes.",
        suggestion="Refresh the list and try again.",
        severity=ErrorSeverity.MEDIUM,
    ),
    ErrorCategory.DELETE_FAILED: ErrorResponse(
        code=ErrorCode.ERR_DELETE_FAILED,
        message="Failed to delete the item.",
        suggestion="Please try again in a moment.",
        severity=ErrorSeverity.MEDIUM,
    ),
    ErrorCategory.FETCH_FAILED: ErrorResponse(
        code=ErrorCode.ERR_FETCH_FAILED,
        message="Failed to load data.",
        suggestion="Pull to refresh or try again in a moment.",
        severity=ErrorSeverity.MEDIUM,
    ),
    ErrorCategory.STALE_REFERENCE: ErrorResponse(
        code=ErrorCode.ERR_STALE_REFERENCE,
        message="A referenced room no longer exists.",
        suggestion="Reassign the task to an existing room.",
        severity=ErrorSeverity.LOW,
    ),
    ErrorCategory.AUTHENTICATION_FAILED: ErrorResponse(
        code=ErrorCode.ERR_AUTHENTICATION_FAILED,
        message="Authentication failed.",
        suggestion="Sign in again.",
        severity=ErrorSeverity.HIGH,
    ),
    ErrorCategory.NETWORK_ERROR: ErrorResponse(
        code=ErrorCode.ERR_NETWORK_ERROR,
        message="Network error occurred.",
        suggestion="Please check your connection and try again.",
        severity=ErrorSeverity.MEDIUM,
    ),
    ErrorCategory.UNKNOWN: ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact an admin.",
        severity=ErrorSeverity.MEDIUM,
    ),
}


_ERROR_PATTERNS: dict[Literal["auth", "network"], dict[str, list[str] | set[str]]] = {
    "auth": {
        "phrases": [
            "authentication failed",
            "invalid credentials",
            "unauthorized",
            "invalid token",
            "401",
        ],
        "exception_types": {"AuthenticationError"},
    },
    "network": {
        "phrases": [
            "connection",
            "timeout",
            "network",
            "503",
            "502",
            "504",
            "unreachable",
        ],
        "exception_types": {"ConnectionError", "TimeoutError", "ConnectError", "ReadTimeout"},
    },
}


def _match_error_pattern(
    *,
    error_str: str,
    exception_type: str,
    pattern_type: Literal["auth", "network"],
) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def error_response_for(category: ErrorCategory) -> ErrorResponse:
    """Return the user-facing response for an error category."""
    return _CATEGORY_RESPONSES[category]


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an exception and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, TaskAccessError):
        return error_response_for(exception.category)

    error_str = str(exception).lower()
    exception_type = type(exception).__name__

    if exception_type == "PermissionError" or "permission denied" in error_str:
        return error_response_for(ErrorCategory.PERMISSION_DENIED)

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="auth"):
        return error_response_for(ErrorCategory.AUTHENTICATION_FAILED)

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="network"):
        return error_response_for(ErrorCategory.NETWORK_ERROR)

    return error_response_for(ErrorCategory.UNKNOWN)
