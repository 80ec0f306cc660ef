"""
Shared error handling for Open Authorization.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class OpenAuthException(Exception):
    """Base exception for Open Authorization."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
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


class InvalidIdentifierError(OpenAuthException):
    """Malformed or missing user identifier."""

    def __init__(self, message: str = "Invalid identifier", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_INPUT", message, details)


class SignalCollectionError(OpenAuthException):
    """Account data could not be collected or failed integrity checks."""

    def __init__(self, message: str = "Signal collection failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SIGNAL_COLLECTION_ERROR", message, details)


class CacheUnavailableError(OpenAuthException):
    """Cache backend unavailable. Callers degrade to a miss or no-op."""

    def __init__(self, message: str = "Cache unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details)


class ConfigurationError(OpenAuthException):
    """Invalid startup configuration."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class ExternalServiceError(OpenAuthException):
    """External service errors."""

    def __init__(self,
                 service: str,
                 message: str = "External service error",
                 details: Optional[Dict[str, Any]] = None,
                 code: str = "EXTERNAL_SERVICE_ERROR"):
        self.service = service
        super().__init__(code, f"{service}: {message}", details)


class NotifierError(ExternalServiceError):
    """Alert delivery failed. Notifiers log and discard it."""

    def __init__(self, service: str, message: str = "Notifier failure", details: Optional[Dict[str, Any]] = None):
        super().__init__(service, message, details, code="NOTIFIER_ERROR")
