from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from typing import Any, Dict
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
form_session_ctx_var: ContextVar[str | None] = ContextVar("form_session_id", default=None)
logger = logging.getLogger("assetdesk.request")

_MAX_ID_LENGTH = 128


def _incoming_id(raw: str | None) -> str:
    """Reuse the caller's correlation id when it is sane, else mint one."""

    value = (raw or "").strip()
    if value and len(value) <= _MAX_ID_LENGTH and value.isprintable():
        return value
    return uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation id and log one summary record.

    Route handlers run in a child task, so what they learn (the caller, the
    form session) comes back on ``request.state``, not through the context
    vars reset here.
    """

    def __init__(self, app, header_name: str = "X-Request-ID", slow_ms: float = 1000.0) -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name
        self.slow_ms = slow_ms

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _incoming_id(request.headers.get(self.header_name))
        request.state.request_id = request_id
        tokens = [
            (request_id_ctx_var, request_id_ctx_var.set(request_id)),
            (principal_ctx_var, principal_ctx_var.set(None)),
            (form_session_ctx_var, form_session_ctx_var.set(None)),
        ]
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.failed",
                extra={"extra_data": self._summary(request, start, status=500)},
            )
            raise
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

        summary = self._summary(request, start, status=response.status_code)
        response.headers[self.header_name] = request_id
        response.headers.setdefault("X-Response-Time", f"{summary['duration_ms']:.2f}ms")
        slow = summary["duration_ms"] >= self.slow_ms
        level = logging.WARNING if slow or response.status_code >= 500 else logging.INFO
        logger.log(level, "request.completed", extra={"extra_data": summary})
        return response

    def _summary(self, request: Request, start: float, *, status: int) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            "request_id": request.state.request_id,
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        }
        for key in ("principal", "form_session"):
            value = getattr(request.state, key, None)
            if value:
                summary[key] = value
        return summary
