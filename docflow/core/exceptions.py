"""Custom exception hierarchy.

Every error a caller can act on derives from ``AppError`` and carries a
stable ``code``. The API layer maps the classes below to HTTP statuses;
anything that is not an ``AppError`` is reported as an internal error.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    code = "APP_ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        if code is not None:
            self.code = code


class ValidationError(AppError):
    """Raised when input is malformed, before any side effect."""

    code = "VALIDATION_ERROR"


class ForbiddenError(AppError):
    """Raised on identity mismatch, ownership denial or a membership rule violation."""

    code = "FORBIDDEN"


class NotFoundError(AppError):
    """Raised when a workspace, user, upload, document or job does not exist."""

    code = "NOT_FOUND"


class ConflictError(AppError):
    """Raised when a uniqueness constraint rejects a write."""

    code = "CONFLICT"


class TransientInfraError(AppError):
    """Raised when the database or queue failed in a way that is safe to retry."""

    code = "TRANSIENT_INFRA"
    retryable = True


class FatalInternalError(AppError):
    """Raised for unclassified failures. The message is safe to show to clients."""

    code = "INTERNAL_ERROR"


class ConfigurationError(FatalInternalError):
    """Raised when configuration is invalid or missing."""

    code = "CONFIGURATION_ERROR"


class QueueDispatchError(AppError):
    """Raised when a message could not be handed to the queue.

    Attributes:
        error_type: Broad failure family (network, authentication, service, generic)
        retryable: Whether resending the identical message may succeed
    """

    code = "QUEUE_SEND_FAILED"

    def __init__(
        self,
        message: str,
        code: str,
        error_type: str,
        retryable: bool,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message, original_error=original_error, code=code)
        self.error_type = error_type
        self.retryable = retryable
