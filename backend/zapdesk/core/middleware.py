"""Middlewares personalizados para ZapDesk."""

from __future__ import annotations

import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from zapdesk.core.config import settings
from zapdesk.core.logging import get_logger, resolve_log_level

logger = get_logger("zapdesk.request")


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Registra inicio y fin de cada request HTTP con un `x-request-id`."""

    def __init__(self, app, *, skip_prefixes: tuple[str, ...] | None = None) -> None:
        super().__init__(app)
        self._skip_prefixes = (
            skip_prefixes if skip_prefixes is not None else settings.request_log_skip_prefixes
        )
        self._level = resolve_log_level(settings.request_log_level)

    async def dispatch(self, request: Request, call_next):
        request_id = uuid4().hex
        path = request.url.path
        quiet = path.startswith(self._skip_prefixes)
        start = time.perf_counter()
        client_ip = _client_ip(request)

        if not quiet:
            logger.log(
                self._level,
                "request.started",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": path,
                    "client_ip": client_ip,
                    "user_agent": request.headers.get("user-agent"),
                },
            )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request.failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": path,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    "client_ip": client_ip,
                },
            )
            raise

        response.headers["x-request-id"] = request_id
        if not quiet:
            logger.log(
                self._level,
                "request.completed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    "client_ip": client_ip,
                },
            )

        return response
