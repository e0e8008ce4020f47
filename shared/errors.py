"""
Shared error handling for the Catalog Access Layer.
"""

from typing import Dict, Any, Optional

from opentelemetry import trace
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        # Get trace ID from current span
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Malformed or missing input, rejected before any store interaction."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(AccessLayerException):
    """A key lookup yielded nothing."""

    status_code = 404

    def __init__(self, resource: str, key: Any, details: Optional[Dict[str, Any]] = None):
        self.resource = resource
        self.key = key
        super().__init__("NOT_FOUND", f"{resource} {key} not found", details)


class ConflictError(AccessLayerException):
    """A write would violate a uniqueness invariant."""

    status_code = 409

    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFLICT", message, details)


class StoreError(AccessLayerException):
    """Record store failure."""

    status_code = 500
    retryable = False

    def __init__(self, message: str = "Store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_ERROR", message, details)


class TransientStoreError(StoreError):
    """Store failure expected to succeed when retried after a delay."""

    status_code = 503
    retryable = True

    def __init__(self, message: str = "Store temporarily unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.code = "TRANSIENT_STORE_ERROR"


class PermanentStoreError(StoreError):
    """Store failure that retrying will not fix."""

    def __init__(self, message: str = "Store error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.code = "PERMANENT_STORE_ERROR"
