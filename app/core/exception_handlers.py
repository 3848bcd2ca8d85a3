"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return the gateway's error envelope:

    {"status": "error", "code": ..., "message": ..., "request_id": ...,
     "requestsUsedToday": ..., "remainingRequests": ..., "details": {...}}

Quota figures appear whenever the failing workflow attached them.
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import (
    AccessDeniedError,
    AppError,
    InvalidCredentialError,
    MissingInputError,
    NotFoundError,
    QuotaExceededError,
    TransportFailureError,
    UpstreamRateLimitedError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[AppError], int]] = [
    (MissingInputError, 400),
    (InvalidCredentialError, 401),
    (AccessDeniedError, 403),
    (NotFoundError, 404),
    (QuotaExceededError, 429),
    (UpstreamRateLimitedError, 429),
    (TransportFailureError, 504),
]


def status_code_for(exc: AppError) -> int:
    """Return the HTTP status for a domain error (502 for other upstream errors)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 502


def error_envelope(code: str, message: str, **extra: Any) -> dict[str, Any]:
    """Build the error body shared by every handler."""
    content: dict[str, Any] = {
        "status": "error",
        "code": code,
        "message": message,
        "request_id": get_request_id(),
    }
    content.update({k: v for k, v in extra.items() if v is not None})
    return content


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Quota figures found in ``exc.details`` are lifted to the top level as
    ``requestsUsedToday``/``remainingRequests``; the remaining details are
    returned under ``details``.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_code_for(exc)
    details = dict(exc.details or {})
    used = details.pop("requests_used_today", None)
    remaining = details.pop("remaining_requests", None)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(details),
            "request_path": request.url.path,
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=error_envelope(
            exc.code,
            exc.message,
            requestsUsedToday=used,
            remainingRequests=remaining,
            details=details or None,
        ),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed request bodies (bad JSON, wrong types) as an envelope."""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_count": len(errors)},
    )
    return JSONResponse(
        status_code=422,
        content=error_envelope(
            "invalid_request",
            "Request body is malformed",
            details={"errors": errors},
        ),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method) as an envelope."""
    if exc.status_code == 404:
        message = f"Endpoint not found: {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(f"http_{exc.status_code}", message),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    No stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=error_envelope(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
