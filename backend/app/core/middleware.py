"""
HTTP middleware for the trigger service.

Each request gets a correlation id: the caller's ``X-Request-ID``, else
the trace id from Cloud Run's ``X-Cloud-Trace-Context``, else a fresh one.
The id is bound into the log context for the lifetime of the request and
echoed back with the elapsed time. Health and docs traffic is not logged.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backend.app.core.logging_config import bind_log_context, reset_log_context

logger = logging.getLogger(__name__)

_QUIET_PREFIXES = ("/docs", "/redoc", "/openapi", "/favicon", "/health")


def correlation_id(request: Request) -> str:
    request_id = request.headers.get("X-Request-ID")
    if request_id:
        return request_id
    trace = request.headers.get("X-Cloud-Trace-Context")
    if trace:
        return trace.split("/", 1)[0]
    return uuid.uuid4().hex[:16]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind the correlation id, time the request, log one line for it."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = correlation_id(request)
        path = request.url.path
        bind_log_context(request_id=request_id, endpoint=path)
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "%s %s raised after %.1fms", request.method, path,
                (time.perf_counter() - start) * 1000,
                extra={"status_code": 500},
            )
            reset_log_context()
            raise

        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed_ms:.1f}ms"

        if not path.startswith(_QUIET_PREFIXES):
            logger.log(
                logging.WARNING if response.status_code >= 400 else logging.INFO,
                "%s %s → %d", request.method, path, response.status_code,
                extra={"duration_ms": elapsed_ms, "status_code": response.status_code},
            )

        reset_log_context()
        return response
