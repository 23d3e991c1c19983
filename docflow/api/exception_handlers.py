"""Map application errors to HTTP responses.

Every error body is an RFC 7807 ``ErrorDetail`` carrying the error's stable
``code``. Unclassified exceptions become a generic 500 so internals never
leak to clients.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from docflow.core.exceptions import (
    AppError,
    ConflictError,
    FatalInternalError,
    ForbiddenError,
    NotFoundError,
    QueueDispatchError,
    TransientInfraError,
    ValidationError,
)
from docflow.utils.logging import get_logger
from docflow.utils.responses import create_error_detail

LOGGER = get_logger(__name__)

RETRY_AFTER_SECONDS = 5

# Checked in order; the first matching class wins
STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST, "Invalid Request"),
    (ForbiddenError, status.HTTP_403_FORBIDDEN, "Forbidden"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (ConflictError, status.HTTP_409_CONFLICT, "Conflict"),
    (TransientInfraError, status.HTTP_503_SERVICE_UNAVAILABLE, "Service Temporarily Unavailable"),
    (QueueDispatchError, status.HTTP_503_SERVICE_UNAVAILABLE, "Service Temporarily Unavailable"),
    (FatalInternalError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"),
)


def _status_for(exc: AppError):
    for error_cls, status_code, title in STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code, title
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    status_code, title = _status_for(exc)
    headers = {}
    if exc.retryable and status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers["Retry-After"] = str(RETRY_AFTER_SECONDS)

    if status_code >= 500:
        LOGGER.error(f"{exc.code}: {exc.message}", extra={"path": request.url.path})
    else:
        LOGGER.info(f"{exc.code}: {exc.message}", extra={"path": request.url.path})

    detail = create_error_detail(
        title=title,
        status=status_code,
        detail=exc.message,
        request=request,
        code=exc.code,
    )
    return JSONResponse(status_code=status_code, content=detail.model_dump(mode="json"), headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.error(f"Unexpected error: {str(exc)}", exc_info=exc, extra={"path": request.url.path})
    detail = create_error_detail(
        title="Internal Server Error",
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred",
        request=request,
        code=FatalInternalError.code,
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=detail.model_dump(mode="json"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
