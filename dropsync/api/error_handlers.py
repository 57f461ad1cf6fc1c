"""Global exception handlers for the trigger API.

Every failure leaves the API as one ``{"ok": false, "error", "code"}`` object.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from dropsync.api.exceptions import (
    APIException,
    ConfigurationAPIError,
    ErrorCode,
    ExternalAPIError,
)
from dropsync.api.responses import error_response
from dropsync.sync.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


async def api_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle custom API exceptions."""
    # Type narrowing for FastAPI compatibility
    if not isinstance(exc, APIException):
        raise exc

    correlation_id = getattr(request.state, "correlation_id", None)

    logger.error(
        "api_error",
        extra={
            "correlation_id": correlation_id,
            "error_code": exc.error_code.value,
            "status_code": exc.status_code,
            "error": exc.message,
            "path": request.url.path,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            exc.message,
            exc.error_code.value,
            correlation_id=correlation_id,
            details=exc.details or None,
        ),
    )


async def dropsync_exception_handler(request: Request, exc: Exception) -> Response:
    """Translate domain errors escaping a run into API errors."""
    if isinstance(exc, ConfigurationError):
        return await api_exception_handler(
            request, ConfigurationAPIError(str(exc), missing=exc.missing)
        )
    if isinstance(exc, UpstreamError):
        return await api_exception_handler(
            request, ExternalAPIError(exc.service, str(exc), status=exc.status_code)
        )
    raise exc


async def validation_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle request validation errors."""
    if not isinstance(exc, RequestValidationError):
        raise exc

    correlation_id = getattr(request.state, "correlation_id", None)

    formatted_errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "request_validation_failed",
        extra={
            "correlation_id": correlation_id,
            "errors": formatted_errors,
            "path": request.url.path,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response(
            "Request validation failed",
            ErrorCode.VALIDATION_ERROR.value,
            correlation_id=correlation_id,
            details={"fields": formatted_errors},
        ),
    )


async def global_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all handler for unexpected exceptions."""
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={"correlation_id": correlation_id, "path": request.url.path, "error": str(exc)},
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            str(exc) or "Error",
            ErrorCode.INTERNAL_ERROR.value,
            correlation_id=correlation_id,
        ),
    )
