"""FastAPI middleware for request processing."""

from collections.abc import Callable

from fastapi import Request

from dropsync.core.logging_utils import generate_correlation_id, get_logger

logger = get_logger(__name__)


async def correlation_id_middleware(request: Request, call_next: Callable):
    """
    Add correlation ID to all requests for tracing.

    Checks for X-Correlation-ID header, generates one if missing. The same id
    tags every log line of the sync run the request triggers.
    """
    correlation_id = request.headers.get("X-Correlation-ID") or f"api-{generate_correlation_id()}"
    request.state.correlation_id = correlation_id

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response
