"""Map domain errors onto HTTP responses.

Every error leaves the service in the same envelope::

    {"error": {"code": ..., "message": ..., "request_id": ..., "details": ...}}

Throttled responses additionally carry a top-level ``retryAfter`` and a
``Retry-After`` header; authentication failures carry a bearer challenge.
Anything that is not an ``AppError`` becomes an opaque 500.
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    DownstreamAppError,
    QuotaExceededAppError,
    QuotaStoreUnavailableAppError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Checked in order; the first matching base class wins.
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (AuthenticationAppError, 401),
    (QuotaExceededAppError, 429),
    (DownstreamAppError, 503),
    (QuotaStoreUnavailableAppError, 503),
)


def status_for_error(exc: AppError) -> int:
    """Map a domain error to its HTTP status code (500 when unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _envelope(code: str, message: str, details: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        error["details"] = details
    return {"error": error}


def _challenge_headers(exc: AppError, status_code: int) -> dict[str, str] | None:
    if isinstance(exc, QuotaExceededAppError):
        return {"Retry-After": str(exc.retry_after)}
    if status_code == 401:
        return {"WWW-Authenticate": "Bearer"}
    return None


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an ``AppError`` with the status its type maps to."""
    status_code = status_for_error(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    content = _envelope(exc.code, exc.message, exc.details)
    if isinstance(exc, QuotaExceededAppError):
        content["retryAfter"] = exc.retry_after

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=_challenge_headers(exc, status_code),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the failure, answer 500 without internals."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content=_envelope(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app) -> None:
    """Register the domain and fallback handlers on ``app``."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
