"""
Custom Exception Hierarchy

Structured exceptions rendered by the global handler in ``core.middleware``.
"""
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for API responses"""

    # General errors (1xxx)
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    UNAUTHORIZED = "ERR_1004"

    # Ingestion errors (5xxx)
    MALFORMED_EVENT = "ERR_5101"

    # Storage errors (7xxx)
    PERSISTENCE_ERROR = "ERR_7001"
    QUERY_ERROR = "ERR_7002"


class AppException(Exception):
    """Base exception for all application errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response"""
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "details": self.details
            }
        }


class WebhookAuthError(AppException):
    """Webhook secret missing or wrong. Carries no hint about the expected value."""

    def __init__(self):
        super().__init__(
            message="Unauthorized",
            error_code=ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class MalformedEventError(AppException):
    """
    Update without a usable channel post.

    Never rendered to Telegram: the receiver acknowledges these with 200 so
    the sender does not redeliver updates this service does not model.
    """

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Ignored update: {reason}",
            error_code=ErrorCode.MALFORMED_EVENT,
            status_code=200,
            details=details,
        )
        self.reason = reason


class StorageException(AppException):
    """Base exception for database failures"""

    def __init__(self, message: str, error_code: ErrorCode, operation: str):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=500,
            details={"operation": operation},
        )


class PersistenceError(StorageException):
    """Write to the post store failed; the 500 makes Telegram redeliver"""

    def __init__(self, operation: str = "upsert"):
        super().__init__(
            message="Failed to store channel post",
            error_code=ErrorCode.PERSISTENCE_ERROR,
            operation=operation,
        )


class QueryError(StorageException):
    """Read from the post store failed; no partial page is returned"""

    def __init__(self, operation: str = "query"):
        super().__init__(
            message="Failed to load feed",
            error_code=ErrorCode.QUERY_ERROR,
            operation=operation,
        )
