"""
Request logging for the swap API.

Every request gets a request id (taken from ``x-request-id`` or generated)
bound into structlog's context, so lifecycle logs emitted while serving the
request carry it too. Health probes log at debug.
"""

import logging
import time
import uuid
from typing import Iterable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

logger = structlog.stdlib.get_logger("swapflow.http")

REQUEST_ID_HEADER = "x-request-id"


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one ``swap_api_request`` event per request."""

    def __init__(self, app: ASGIApp, quiet_paths: Iterable[str] = ("/healthz",)):
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            path = request.url.path
            level = logging.DEBUG if path in self.quiet_paths and status_code < 400 else _level_for(status_code)
            logger.log(
                level,
                "swap_api_request",
                method=request.method,
                path=path,
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
