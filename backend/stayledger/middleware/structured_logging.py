# backend/stayledger/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("stayledger.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One access-log line per request.

    The principal is only known once a handler has resolved it, so user and
    portfolio ids are read back from request.state after the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            principal = getattr(request.state, "principal", None)
            log.info(
                "http_request",
                extra={
                    "event": "http_request",
                    "request_id": getattr(request.state, "request_id", None),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": int((time.perf_counter() - t0) * 1000),
                    "user_id": getattr(principal, "user_id", None),
                    "portfolio_id": getattr(principal, "portfolio_id", None),
                },
            )
