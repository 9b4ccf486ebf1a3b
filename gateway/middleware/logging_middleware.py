"""
Request logging middleware.

Binds a request id to every log line emitted while a gateway request is
handled and logs one `gateway_request` event per request.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("gateway.http")

QUIET_PATHS = frozenset({"/healthz"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Per-request id, duration and status logging."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = request_id
            return response
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
            if request.url.path not in QUIET_PATHS or status_code >= 400:
                if status_code >= 500:
                    emit = logger.error
                elif status_code >= 400:
                    emit = logger.warning
                else:
                    emit = logger.info
                emit(
                    "gateway_request",
                    method=request.method,
                    status=status_code,
                    duration_ms=elapsed_ms,
                )
            structlog.contextvars.clear_contextvars()
