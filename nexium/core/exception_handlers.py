"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → appropriate HTTP status (400, 404, 409, 500)
- Request body validation → 400 (instead of FastAPI's default 422)
- Router 404/405 and other HTTPExceptions → same envelope, original status
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nexium.core.errors import (
    AppError,
    ConflictAppError,
    ErrorDetails,
    NotFoundAppError,
    StorageAppError,
    UpstreamAppError,
)
from nexium.core.logging import get_request_id

logger = logging.getLogger(__name__)


def status_code_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code.

    Anything not listed is a client fault (400).
    """
    if isinstance(exc, NotFoundAppError):
        return 404
    if isinstance(exc, ConflictAppError):
        return 409
    if isinstance(exc, (UpstreamAppError, StorageAppError)):
        return 500
    return 400


def build_error_content(
    code: str,
    message: str,
    details: ErrorDetails | dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the ``{"error": {...}}`` envelope shared by every error response."""
    error_content: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": get_request_id(),
    }
    # Include details only if present (optional structured context)
    if details:
        error_content["details"] = details
    return {"error": error_content}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
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

    return JSONResponse(
        status_code=status_code,
        content=build_error_content(exc.code, exc.message, exc.details),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 with the common envelope."""
    fields = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning(
        "request_validation_failed",
        extra={
            "request_path": request.url.path,
            "error_count": len(fields),
        },
    )
    return JSONResponse(
        status_code=400,
        content=build_error_content(
            "invalid_request",
            "Request body is missing or malformed",
            {"fields": fields},
        ),
    )


_HTTP_ERROR_CODES = {
    404: "not_found",
    405: "method_not_allowed",
}


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Wrap routing errors (unknown path, wrong method) in the common envelope."""
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    logger.info(
        "http_error_handled",
        extra={
            "error_code": code,
            "status_code": exc.status_code,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_content(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=build_error_content(
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
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
