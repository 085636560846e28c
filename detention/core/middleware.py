"""
HTTP middleware: request context binding and access logging.
"""
from __future__ import annotations

import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from detention.core.logging import get_logger, request_id as request_id_var, user_id as user_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
USER_ID_HEADER = "X-User-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds the request id and the acting user id to the logging context.

    An upstream request id is reused when present and echoed back on the
    response.
    """

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = rid
        rid_token = request_id_var.set(rid)
        uid_token = user_id_var.set(request.headers.get(USER_ID_HEADER))

        try:
            response = await call_next(request)
        finally:
            user_id_var.reset(uid_token)
            request_id_var.reset(rid_token)

        response.headers[self.header_name] = rid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    One log line per request with its duration; adds X-Process-Time.

    4xx responses log at warning, unhandled exceptions at error.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        context = {
            "method": request.method,
            "path": request.url.path,
        }
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"{request.method} {request.url.path} failed: {exc}",
                extra={**context, "error_type": type(exc).__name__},
                exc_info=True,
            )
            raise

        elapsed = time.perf_counter() - started
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        context.update(status_code=response.status_code, duration_ms=round(elapsed * 1000, 2))

        log = logger.warning if response.status_code >= 400 else logger.info
        log(f"{request.method} {request.url.path} -> {response.status_code}", extra=context)
        return response


def register_middlewares(app: FastAPI) -> None:
    """
    Register the core middlewares.

    The last middleware added runs first, so the request context is bound
    before the access log line is written.
    """
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestContextMiddleware)


__all__ = [
    "RequestContextMiddleware",
    "AccessLogMiddleware",
    "register_middlewares",
]
