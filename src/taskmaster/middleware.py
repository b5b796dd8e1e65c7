from __future__ import annotations

import uuid
from typing import Iterable, List

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from .errors import NotAllowedError
from .origins import is_origin_allowed, normalize_origin


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request_id to the structlog context and log each request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        log = structlog.get_logger()
        await log.ainfo("request_started")

        response = await call_next(request)

        await log.ainfo("request_completed", status_code=response.status_code)

        response.headers["X-Request-ID"] = request_id
        return response


class OriginAllowListMiddleware(BaseHTTPMiddleware):
    """
    Reject requests whose Origin header is not on the allow-list.

    Runs before routing, so a rejected request never reaches a handler or the
    task store. Thin adapter over is_origin_allowed.
    """

    def __init__(self, app: ASGIApp, allowed_origins: Iterable[str]) -> None:
        super().__init__(app)
        self._allowed: List[str] = [normalize_origin(o) for o in allowed_origins if o and o.strip()]

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        origin = request.headers.get("origin")
        if not is_origin_allowed(origin, self._allowed):
            await structlog.get_logger().awarning("origin_rejected", origin=origin)
            err = NotAllowedError()
            return JSONResponse(status_code=err.status_code, content=err.to_dict())
        return await call_next(request)
