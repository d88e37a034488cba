"""Global exception handlers for consistent error responses.

Every domain error leaves the API in the same envelope:

    {"error": {"code": ..., "message": ..., "request_id": ..., "details": ...}}

Status mapping:
- ValidationAppError (and any unmapped AppError) → 400
- AuthenticationAppError → 403
- NotFoundAppError → 404
- RateLimitConfigurationError, MediaUploadAppError → 500
- StorageAppError → 503 (a guarded action is refused when its store is down)
- Anything else → generic 500 with no internals in the body
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    MediaUploadAppError,
    NotFoundAppError,
    RateLimitConfigurationError,
    StorageAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthenticationAppError, 403),
    (NotFoundAppError, 404),
    (RateLimitConfigurationError, 500),
    (MediaUploadAppError, 500),
    (StorageAppError, 503),
)


def status_code_for(exc: AppError) -> int:
    """Resolve the HTTP status for a domain error (400 when unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError with its mapped status.

    Server-side faults (5xx) are logged at error level, client faults at
    warning level. Details are only included when the error carries them.
    """
    status_code = status_code_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    return _error_response(status_code, exc.code, exc.message, exc.details)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log the failure, answer with an opaque 500."""
    logger.error(
        "unhandled_exception",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return _error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain and fallback handlers on ``app``."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
