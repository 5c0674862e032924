"""Global exception handlers for consistent error responses.

FastAPI exception handlers that intercept domain and unexpected errors and
return the standard ``{"success": false, "error": ...}`` envelope.

Design:
- AppError subclasses -> the status they declare (400, 401, 403, 404, 500)
- RateLimitAppError -> 429 with Retry-After and X-RateLimit-* headers
- FastAPI request validation -> 400 with field paths
- Unexpected Exception -> generic 500 (safety net)
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crm_api.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    AppError,
    DataAccessAppError,
    RateLimitAppError,
)
from crm_api.core.logging import get_request_id
from crm_api.core.rate_limit import build_rate_limit_response
from crm_api.core.responses import error_response
from crm_api.core.validation import collect_errors, validation_error

logger = logging.getLogger(__name__)

DATA_ACCESS_FALLBACK_MESSAGE = "Database operation failed"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain application errors with the status their class declares.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the error envelope.
    """
    if isinstance(exc, RateLimitAppError) and exc.result is not None:
        return build_rate_limit_response(exc.result, error=exc.error, message=exc.message)

    status_code = exc.status_code
    message = exc.message
    if isinstance(exc, DataAccessAppError) and not exc.safe:
        message = DATA_ACCESS_FALLBACK_MESSAGE

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    body = error_response(message, code=exc.code, request_id=get_request_id())
    if exc.details and status_code < 500:
        body["details"] = exc.details

    return JSONResponse(status_code=status_code, content=body)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Map FastAPI's 422 body/query validation to the 400 envelope."""
    return await app_error_handler(request, validation_error(collect_errors(exc.errors())))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Keep router-level errors (404 route, 405 method) in the envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail), request_id=get_request_id()),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the error type and request path; the response never carries the
    original message or a traceback.
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
        content=error_response(
            INTERNAL_ERROR_MESSAGE,
            code="internal_server_error",
            request_id=get_request_id(),
        ),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
