"""
Global exception handlers.

Every failure leaves the API in the same envelope:

    {"success": false,
     "error": {"code": ..., "message": ..., "details": {...}},
     "timestamp": "...", "path": "/collaborations/..."}
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from memestack.core.exceptions import AppException

logger = logging.getLogger(__name__)

_DEBUG_ENVIRONMENTS = {"development", "dev", "test"}


def error_envelope(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {
        "success": False,
        "error": {"code": code, "message": message, "details": details or {}},
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
    }
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _context(request: Request, **extra) -> dict:
    return {"path": request.url.path, "method": request.method, **extra}


async def handle_app_exception(request: Request, exc: AppException):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.error_code}: {exc.message}",
        extra=_context(request, error_code=exc.error_code, details=exc.details),
    )
    return error_envelope(
        request, exc.status_code, exc.error_code, exc.message, exc.details, exc.headers
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    """Framework-level failures (missing bearer token, unknown route)."""
    code = {
        status.HTTP_401_UNAUTHORIZED: "authentication_failed",
        status.HTTP_404_NOT_FOUND: "not_found",
        status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    }.get(exc.status_code, "http_error")
    return error_envelope(
        request,
        exc.status_code,
        code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(
        f"Validation failed on {request.url.path}",
        extra=_context(request, errors=errors),
    )
    return error_envelope(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request validation failed",
        {"errors": errors},
    )


async def handle_stale_data(request: Request, exc: StaleDataError):
    """A revision check lost the race against another writer."""
    logger.warning(
        f"Concurrent modification on {request.url.path}: {exc}", extra=_context(request)
    )
    return error_envelope(
        request,
        status.HTTP_409_CONFLICT,
        "concurrent_modification",
        "The resource was modified by another request; reload and retry",
    )


async def handle_database_error(request: Request, exc: SQLAlchemyError):
    logger.error(
        f"Database error: {exc}",
        extra=_context(request, error_type=type(exc).__name__),
        exc_info=True,
    )
    return error_envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "database_error",
        "A database error occurred. Please try again later.",
    )


async def handle_unexpected(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {exc}",
        extra=_context(request, error_type=type(exc).__name__),
        exc_info=True,
    )
    environment = getattr(request.app.state, "environment", "production")
    if environment.lower() in _DEBUG_ENVIRONMENTS:
        message = str(exc)
        details = {
            "error_type": type(exc).__name__,
            "traceback": traceback.format_exc().split("\n"),
        }
    else:
        message = "An unexpected error occurred. Please try again later."
        details = {}
    return error_envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_server_error",
        message,
        details,
    )


# Most specific first; lookup follows the exception's MRO anyway.
HANDLERS = (
    (AppException, handle_app_exception),
    (RequestValidationError, handle_validation_error),
    (StarletteHTTPException, handle_http_exception),
    (StaleDataError, handle_stale_data),
    (SQLAlchemyError, handle_database_error),
    (Exception, handle_unexpected),
)


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class, handler in HANDLERS:
        app.add_exception_handler(exc_class, handler)
