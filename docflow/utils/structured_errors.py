"""Uniform failure records and error inspection helpers.

Components build a ``StructuredError`` before logging a failure or turning it
into a client-facing exception, so that every failure line carries the same
greppable fields: code, message, context, operation, actor and tenant.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from docflow.core.exceptions import AppError

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

# SQLSTATEs worth retrying: serialization failure, deadlock, statement timeout,
# too many connections, admin shutdown. Class 08 (connection exceptions) is
# matched by prefix.
RETRYABLE_SQLSTATES = {"40001", "40P01", "57014", "53300", "57P01", "57P03"}

RETRYABLE_MESSAGE_MARKERS = (
    "ECONNRESET",
    "ENOTFOUND",
    "ECONNREFUSED",
    "ETIMEDOUT",
    "connection was closed",
    "Connection refused",
    "timed out",
)

DB_ERROR_MESSAGES = {
    UNIQUE_VIOLATION: "A record with this unique constraint already exists",
    FOREIGN_KEY_VIOLATION: "Foreign key constraint violation",
    "40001": "Transaction could not be serialized",
    "40P01": "Deadlock detected",
    "57014": "Database operation timeout",
    "53300": "Too many database connections",
    "57P01": "Database server has closed the connection",
    "42P01": "Table does not exist in the database",
    "42703": "Column does not exist in the database",
}


class StructuredError(BaseModel):
    """A failure record ready to be logged or attached to a response."""

    code: str
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    operation: Optional[str] = None
    actor_id: Optional[str] = None
    tenant_id: Optional[str] = None

    def to_log_extra(self) -> Dict[str, Any]:
        """Return the record in a shape suitable for ``logger.*(extra=...)``.

        The fields are nested under one key because ``message`` clashes
        with a reserved ``LogRecord`` attribute.
        """
        return {"structured_error": self.model_dump(mode="json")}


class StructuredErrorReporter:
    """Builds ``StructuredError`` records. Performs no I/O."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def build(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None,
        actor_id: Optional[Any] = None,
        tenant_id: Optional[Any] = None,
    ) -> StructuredError:
        """Build a structured error record.

        Args:
            code: Stable, upper-case error code (e.g. ``SQS_SEND_FAILED``)
            message: Human readable summary
            context: Extra key/value details; values are stringified if not JSON-friendly
            operation: Name of the operation that failed
            actor_id: Id of the principal performing the operation
            tenant_id: Workspace (or solo user) scope of the operation

        Returns:
            StructuredError: The immutable record
        """
        return StructuredError(
            code=code,
            message=message,
            context={key: _plain(value) for key, value in (context or {}).items()},
            timestamp=self._clock(),
            operation=operation,
            actor_id=str(actor_id) if actor_id is not None else None,
            tenant_id=str(tenant_id) if tenant_id is not None else None,
        )


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple, set)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    return str(value)


def get_error_message(error: BaseException) -> str:
    """Return the most useful message available for an exception."""
    if isinstance(error, AppError):
        return error.message
    message = str(error)
    return message or error.__class__.__name__


def _driver_error(error: BaseException) -> Optional[BaseException]:
    if isinstance(error, DBAPIError):
        return error.orig
    return None


def _driver_attr(error: BaseException, *names: str) -> Optional[Any]:
    """Look up an attribute on the DBAPI error or the driver exception behind it."""
    candidates = []
    orig = _driver_error(error)
    if orig is not None:
        candidates.append(orig)
        if orig.__cause__ is not None:
            candidates.append(orig.__cause__)
    for candidate in candidates:
        for name in names:
            value = getattr(candidate, name, None)
            if isinstance(value, str) and value:
                return value
    return None


def get_db_error_code(error: BaseException) -> Optional[str]:
    """Return the SQLSTATE of a database error, if there is one."""
    return _driver_attr(error, "sqlstate", "pgcode")


def get_db_constraint_name(error: BaseException) -> Optional[str]:
    """Return the name of the violated constraint, if the driver reports it."""
    return _driver_attr(error, "constraint_name")


def is_unique_violation(error: BaseException) -> bool:
    return get_db_error_code(error) == UNIQUE_VIOLATION


def describe_db_error(error: BaseException) -> str:
    """Translate a database error into a short operator-facing message."""
    code = get_db_error_code(error)
    if code in DB_ERROR_MESSAGES:
        return DB_ERROR_MESSAGES[code]
    if code and code.startswith("08"):
        return "Cannot reach database server"
    return get_error_message(error)


def is_retryable_error(error: BaseException) -> bool:
    """Decide whether repeating the failed operation unchanged may succeed."""
    if isinstance(error, AppError):
        return error.retryable

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True

    if isinstance(error, DBAPIError):
        if error.connection_invalidated:
            return True
        code = get_db_error_code(error)
        if code is not None:
            return code in RETRYABLE_SQLSTATES or code.startswith("08")
        if isinstance(error, (OperationalError, InterfaceError)):
            return True

    message = str(error)
    return any(marker in message for marker in RETRYABLE_MESSAGE_MARKERS)
