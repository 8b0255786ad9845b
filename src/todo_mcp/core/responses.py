"""
Standard response contracts for todo-mcp tool operations.

Response Schema Contract
========================

Every tool returns the same envelope:

    {
        "success": bool,       # Required: operation success/failure
        "data": {...},         # Required: primary payload
        "error": str | null,   # Required: error message or null on success
        "meta": {              # Required: response metadata
            "version": "response-v2",
            "request_id": "tool_abc123"?
        }
    }

Error payloads
--------------

Failed operations put machine-readable context into ``data``:

    {
        "success": False,
        "data": {
            "error_code": "INVALID_PARAMS",
            "error_type": "not_found",
            "rpc_code": -32602,
            "details": {"id": "nonexistent-id"}
        },
        "error": "Todo item with specified ID not found",
        "meta": {"version": "response-v2"}
    }

``error_code`` names the category, ``error_type`` says how a client should
react, and ``rpc_code`` is the matching JSON-RPC error code for clients that
map envelopes back onto protocol errors.

Key Principle:
    - ``success=True`` means the operation executed correctly (even if the result is empty).
    - ``success=False`` means the operation failed; ``details`` carries what the client
      needs to correct its input.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS

from todo_mcp.core.context import get_correlation_id

RESPONSE_VERSION = "response-v2"


class ErrorCode(str, Enum):
    """Machine-readable error codes for tool responses."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_PARAMS = "INVALID_PARAMS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorType(str, Enum):
    """Error categories for client-side handling.

    Each type indicates whether the operation should be retried.
    """

    VALIDATION = "validation"  # No retry, fix input
    NOT_FOUND = "not_found"  # No retry, verify the identifier
    INTERNAL = "internal"  # Server defect, retry unlikely to help


@dataclass
class ToolResponse:
    """
    Standard response structure for MCP tool operations.

    Attributes:
        success: Whether the operation completed successfully
        data: The primary payload (operation-specific structured data)
        error: Error message if success is False, None otherwise
        meta: Response metadata including version identifier
    """

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": RESPONSE_VERSION})


def _build_meta() -> Dict[str, Any]:
    """Metadata with the response version and the active correlation ID."""
    meta: Dict[str, Any] = {"version": RESPONSE_VERSION}
    request_id = get_correlation_id()
    if request_id:
        meta["request_id"] = request_id
    return meta


def success_response(**fields: Any) -> ToolResponse:
    """Create a standardized success response whose ``data`` is ``fields``."""
    return ToolResponse(success=True, data=dict(fields), error=None, meta=_build_meta())


def error_response(
    message: str,
    *,
    data: Optional[Mapping[str, Any]] = None,
    error_code: Optional[Union[ErrorCode, str]] = None,
    error_type: Optional[Union[ErrorType, str]] = None,
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized error response.

    Args:
        message: Human-readable description of the failure.
        data: Optional mapping with additional machine-readable context.
        error_code: Canonical error code (defaults to ``INTERNAL_ERROR``).
        error_type: Error category (defaults to ``internal``).
        remediation: User-facing guidance on how to fix the issue.
        details: Structured context describing the failure.

    Example:
        >>> error_response(
        ...     "Unsupported todo operation 'archive'",
        ...     error_code=ErrorCode.VALIDATION_ERROR,
        ...     error_type=ErrorType.VALIDATION,
        ... )
    """
    payload: Dict[str, Any] = {}
    if data:
        payload.update(dict(data))

    effective_error_code = error_code if error_code is not None else ErrorCode.INTERNAL_ERROR
    effective_error_type = error_type if error_type is not None else ErrorType.INTERNAL

    if "error_code" not in payload:
        payload["error_code"] = (
            effective_error_code.value
            if isinstance(effective_error_code, Enum)
            else effective_error_code
        )
    if "error_type" not in payload:
        payload["error_type"] = (
            effective_error_type.value
            if isinstance(effective_error_type, Enum)
            else effective_error_type
        )
    if remediation is not None and "remediation" not in payload:
        payload["remediation"] = remediation
    if details and "details" not in payload:
        payload["details"] = dict(details)

    return ToolResponse(success=False, data=payload, error=message, meta=_build_meta())


# ---------------------------------------------------------------------------
# Specialized Error Helpers
# ---------------------------------------------------------------------------


def validation_error(
    message: str,
    *,
    details: Optional[Mapping[str, Any]] = None,
    remediation: Optional[str] = None,
) -> ToolResponse:
    """Create a validation error response (bad request shape, unknown operation)."""
    return error_response(
        message,
        error_code=ErrorCode.VALIDATION_ERROR,
        error_type=ErrorType.VALIDATION,
        details=details,
        remediation=remediation,
    )


def invalid_params_error(
    message: str,
    *,
    details: Optional[Mapping[str, Any]] = None,
    error_type: Union[ErrorType, str] = ErrorType.NOT_FOUND,
) -> ToolResponse:
    """Create an invalid-params error response (JSON-RPC -32602 analog).

    Example:
        >>> invalid_params_error(
        ...     "Todo item with specified ID not found",
        ...     details={"id": "nonexistent-id"},
        ... )
    """
    return error_response(
        message,
        data={"rpc_code": INVALID_PARAMS},
        error_code=ErrorCode.INVALID_PARAMS,
        error_type=error_type,
        details=details,
    )


def internal_error(
    message: str = "An internal error occurred",
    *,
    details: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create an internal error response (JSON-RPC -32603 analog).

    Internal errors indicate a server defect rather than bad input.
    """
    return error_response(
        message,
        data={"rpc_code": INTERNAL_ERROR},
        error_code=ErrorCode.INTERNAL_ERROR,
        error_type=ErrorType.INTERNAL,
        details=details,
        remediation="This is a server defect; check server logs.",
    )
