from __future__ import annotations

import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..core.context import owner_id_ctx_var, principal_ctx_var, request_id_ctx_var

logger = logging.getLogger("registry.request")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log one line when it finishes.

    The route runs in its own task, so the owner the auth dependency binds is
    read back from ``request.state`` rather than from the context variables.
    """

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        tokens = (
            (request_id_ctx_var, request_id_ctx_var.set(request_id)),
            (principal_ctx_var, principal_ctx_var.set(None)),
            (owner_id_ctx_var, owner_id_ctx_var.set(None)),
        )
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers[self.header_name] = request_id
            response.headers.setdefault("X-Response-Time", f"{duration_ms:.2f}ms")
            extra_data = {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            }
            for key in ("principal", "owner_id"):
                value = getattr(request.state, key, None)
                if value is not None:
                    extra_data[key] = value
            logger.info("request.completed", extra={"extra_data": extra_data})
            return response
        finally:
            for var, token in reversed(tokens):
                var.reset(token)
