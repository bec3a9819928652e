"""
Service Errors and Their HTTP Mapping.

Every failure the service reports to a client is a PronounceError. The
error carries a stable machine code, a human-readable message and the
HTTP status the API layer should answer with.

Error Body:
    {
        "success": false,
        "error": "UPSTREAM_TIMEOUT",
        "message": "Audio source did not respond within 10.0s",
        "details": {"key": "5a2b..."}
    }

Status Mapping:
    INVALID_INPUT     -> 400
    NOT_FOUND         -> 404
    UPSTREAM_FAILED   -> 500
    UPSTREAM_TIMEOUT  -> 504
    INTERNAL_ERROR    -> 500
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Machine-readable error codes returned in the "error" field."""
    INVALID_INPUT = "INVALID_INPUT"         # Rejected before any state change
    NOT_FOUND = "NOT_FOUND"                 # Unknown cache key, job or route
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"   # Audio source too slow
    UPSTREAM_FAILED = "UPSTREAM_FAILED"     # Audio source or resolver error
    INTERNAL_ERROR = "INTERNAL_ERROR"       # Unexpected error


STATUS_BY_CODE = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UPSTREAM_FAILED: 500,
    ErrorCode.UPSTREAM_TIMEOUT: 504,
    ErrorCode.INTERNAL_ERROR: 500,
}


class PronounceError(Exception):
    """
    Base exception for service errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode.
        details: Optional dictionary with additional context.
    """

    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return STATUS_BY_CODE.get(self.code, 500)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the error body returned by the API."""
        result: Dict[str, Any] = {
            "success": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(PronounceError):
    """
    Raised when request input is rejected.

    The reason is a finer-grained code (TEXT_REQUIRED, TEXT_TOO_LONG,
    TEXT_NOT_CHINESE, LANGUAGE_UNSUPPORTED, TEXTS_REQUIRED,
    TOO_MANY_TEXTS) reported under details.reason.

    Example:
        >>> raise ValidationError("Text is required", "TEXT_REQUIRED")
    """

    def __init__(self, message: str, reason: str = "INVALID", details: Optional[Dict] = None):
        self.reason = reason
        merged = {"reason": reason}
        merged.update(details or {})
        super().__init__(message, ErrorCode.INVALID_INPUT, merged)


class NotFoundError(PronounceError):
    """Raised for an unknown cache key or preload job."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.NOT_FOUND, details)


class UpstreamTimeout(PronounceError):
    """Raised when the audio source does not answer in time."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.UPSTREAM_TIMEOUT, details)


class UpstreamFailure(PronounceError):
    """Raised when the resolver or the audio source fails."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.UPSTREAM_FAILED, details)


class InternalError(PronounceError):
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.INTERNAL_ERROR, details)
