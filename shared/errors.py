"""
Shared error handling for the resilient cache service.

Only ``health_check`` lets a remote failure reach a caller; every other
cache operation turns these errors into a local-tier fallback.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class CacheLayerException(Exception):
    """Base exception for the cache layer."""

    status_code = 503

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details,
        )


class CacheTimeoutError(CacheLayerException):
    """A single remote attempt exceeded its timeout."""

    def __init__(self, timeout_ms: int, operation: Optional[str] = None):
        self.timeout_ms = timeout_ms
        self.operation = operation
        details = {"timeout_ms": timeout_ms}
        if operation:
            details["operation"] = operation
        super().__init__("CACHE_TIMEOUT", f"Redis operation timed out after {timeout_ms}ms", details)


class RemoteOperationError(CacheLayerException):
    """The remote client reported a failure (connectivity, auth, protocol)."""

    def __init__(self, operation: str, message: str = "Remote operation failed", details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__("REMOTE_OPERATION_ERROR", f"{operation}: {message}", details)


class CacheSerializationError(CacheLayerException):
    """A value could not be encoded as JSON. Raised to the caller, never retried."""

    status_code = 400

    def __init__(self, key: str, error: BaseException):
        self.key = key
        super().__init__(
            "CACHE_SERIALIZATION_ERROR",
            f"Value for key '{key}' is not JSON serializable: {describe_error(error)}",
            {"key": key},
        )


class RetriesExhaustedError(CacheLayerException):
    """Every configured attempt of a remote operation failed."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            "RETRIES_EXHAUSTED",
            f"{operation} failed after {attempts} attempts: {describe_error(last_error)}",
            {"operation": operation, "attempts": attempts},
        )


def describe_error(error: BaseException) -> str:
    """Return a non-empty, human readable description of an error."""
    message = str(error)
    return message if message else type(error).__name__
