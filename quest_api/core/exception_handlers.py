"""Global exception handlers for consistent error responses.

Design:
- ThrottledError → 429 with the ``{error, retryAfter, resetTime}`` body and
  ``X-RateLimit-*`` / ``Retry-After`` headers
- ValidationAppError subclasses → 400 (413 for oversized bodies); field detail
  only when ``APP_EXPOSE_VALIDATION_DETAILS`` is on
- AuthenticationAppError → 401, AuthorizationAppError → 403
- PaymentAppError → 502 with a generic message
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from quest_api.core.config import settings
from quest_api.core.errors import (
    AppError,
    AuthenticationAppError,
    AuthorizationAppError,
    PayloadTooLargeError,
    PaymentAppError,
    ThrottledError,
    ValidationAppError,
    ValidationFailedError,
)
from quest_api.core.logging import get_request_id
from quest_api.core.rate_limit import too_many_requests_response

logger = logging.getLogger(__name__)

GENERIC_VALIDATION_MESSAGE = "Invalid request data"


def _status_for(exc: AppError) -> int:
    if isinstance(exc, PayloadTooLargeError):
        return 413
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, AuthenticationAppError):
        return 401
    if isinstance(exc, AuthorizationAppError):
        return 403
    if isinstance(exc, PaymentAppError):
        return 502
    return 500


async def throttled_error_handler(request: Request, exc: ThrottledError) -> JSONResponse:
    """Render a rate limit rejection as a 429 response."""
    return too_many_requests_response(
        exc.decision,
        exc.retry_after,
        include_headers=settings.app.rate_limit_include_headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context (never for 5xx)

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    message = exc.message
    details = exc.details if status_code < 500 else None
    if isinstance(exc, ValidationFailedError) and not settings.app.expose_validation_details:
        message = GENERIC_VALIDATION_MESSAGE
        details = None

    error_content = {
        "code": exc.code,
        "message": message,
        "request_id": get_request_id(),
    }
    if details:
        error_content["details"] = details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the error type for debugging while returning a generic message, so
    no stack traces or internal details reach the client.
    """
    request_id = get_request_id() or getattr(request.state, "request_id", None)
    logger.error(
        "unhandled_exception",
        extra={
            "request_id": request_id,
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": request_id,
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Starlette resolves handlers by the exception's MRO, so ``ThrottledError``
    reaches its own handler before the ``AppError`` one.
    """
    app.exception_handler(ThrottledError)(throttled_error_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
