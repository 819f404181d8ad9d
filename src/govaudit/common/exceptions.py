"""Custom exceptions for govaudit.

Provides a hierarchy of exceptions for different error types.
All govaudit exceptions inherit from GovAuditException.

Only ConfigurationError is ever raised to callers of the public logging
API; the others are raised internally and terminated by the FailureSink.
"""

from typing import Any, Dict, Optional


class GovAuditException(Exception):
    """Base exception for all govaudit errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: str = "GOVAUDIT_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for diagnostics."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(GovAuditException):
    """Raised when configuration is invalid or missing.

    Covers malformed sensitive-fields documents. This is the only error
    allowed to escape the pipeline, and only at initialization.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIG_ERROR", details=details)


class TransportError(GovAuditException):
    """Raised when delivering entries to a sink fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        self.status_code = status_code
        super().__init__(message, code="TRANSPORT_ERROR", details=details)


class DispatcherClosedError(GovAuditException):
    """Raised when an entry is submitted after the dispatcher shut down."""

    def __init__(self, message: str = "Dispatcher is closed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="DISPATCHER_CLOSED", details=details)
