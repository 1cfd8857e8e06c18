"""
Correlation Middleware

Binds the caller's correlation id for the whole request, logs request
start/end with timing, and echoes the id back in a response header.
"""

import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging import EventType, clear_correlation_id, get_logger, set_correlation_id

CORRELATION_RESPONSE_HEADER = "X-Test-Run-Id"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware for correlation-tagged request logging."""

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = "x-test-run-id",
        logger_name: str = "socialsync.middleware",
        exclude_paths: Optional[list] = None,
    ):
        super().__init__(app)
        self.header_name = header_name
        self.logger = get_logger(logger_name)
        self.exclude_paths = exclude_paths or ["/favicon.ico"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = set_correlation_id(request.headers.get(self.header_name))

        if self._should_exclude_path(request.url.path):
            try:
                return await call_next(request)
            finally:
                clear_correlation_id()

        start_time = time.time()
        method = request.method
        path = request.url.path

        try:
            self.logger.log_request_start(
                method=method,
                path=path,
                metadata={"client_ip": self._get_client_ip(request)},
            )

            response = await call_next(request)

            duration_ms = (time.time() - start_time) * 1000
            self.logger.log_request_end(
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

            response.headers[CORRELATION_RESPONSE_HEADER] = correlation_id
            return response

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self.logger.error(
                f"Request processing error: {method} {path}",
                event_type=EventType.GATEWAY_ERROR,
                method=method,
                path=path,
                duration_ms=duration_ms,
                metadata={"error": str(e), "error_type": type(e).__name__},
            )
            raise

        finally:
            clear_correlation_id()

    def _should_exclude_path(self, path: str) -> bool:
        return any(excluded in path for excluded in self.exclude_paths)

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"


def add_correlation_middleware(app, **kwargs):
    """Add correlation middleware to a FastAPI app."""
    app.add_middleware(CorrelationMiddleware, **kwargs)
    return app
