# backend/stayledger/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Ids end up in every log line; anything else is replaced.
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def accept_request_id(raw: Optional[str]) -> str:
    """Use the caller's id when it is short and log-safe, otherwise mint one."""
    candidate = (raw or "").strip()
    if _SAFE_ID.match(candidate):
        return candidate
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id, shared with the log formatter and echoed back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Header lookup is case-insensitive.
        rid = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = rid
        token = request_id_ctx.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
