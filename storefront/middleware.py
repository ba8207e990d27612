"""
Middleware components for request handling and logging.

Provides request tracing and logging, slow request warnings, cache headers for
static assets and Prometheus request metrics.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging_config import clear_request_id, get_logger, set_request_id

logger = get_logger(__name__)


def _endpoint_label(request: Request) -> str:
    """Route template of the request, so product ids do not explode label sets."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path
    if request.url.path.startswith("/static/"):
        return "/static"
    return "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request and response with a correlation id.

    The id is taken from an incoming ``X-Request-ID`` header or generated, is
    available to every log record emitted while the request is handled and is
    echoed back in the response headers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_id(request.headers.get("X-Request-ID") or None)
        start_time = time.perf_counter()

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "extra_fields": {
                    "method": request.method,
                    "path": request.url.path,
                    "query_params": str(request.query_params),
                    "client_host": request.client.host if request.client else None,
                    "user_agent": request.headers.get("user-agent"),
                    "htmx": request.headers.get("HX-Request") == "true",
                }
            },
        )

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000
            response.headers["X-Request-ID"] = request_id

            logger.info(
                f"Request completed: {request.method} {request.url.path} "
                f"[{response.status_code}] ({duration_ms:.2f}ms)",
                extra={
                    "extra_fields": {
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "duration_ms": duration_ms,
                    }
                },
            )
            return response
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.url.path} ({duration_ms:.2f}ms)",
                extra={"extra_fields": {"error": str(exc)}},
            )
            raise
        finally:
            clear_request_id()


class StaticFileCacheMiddleware(BaseHTTPMiddleware):
    """Add cache-control headers to static asset responses."""

    # Cache durations for different file types (in seconds)
    CACHE_DURATIONS = {
        ".css": 86400,
        ".js": 86400,
        ".png": 604800,
        ".jpg": 604800,
        ".svg": 604800,
        ".ico": 604800,
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        path = request.url.path
        if path.startswith("/static/") and response.status_code == 200:
            for ext, duration in self.CACHE_DURATIONS.items():
                if path.endswith(ext):
                    response.headers["Cache-Control"] = f"public, max-age={duration}"
                    response.headers["Vary"] = "Accept-Encoding"
                    break
            else:
                response.headers["Cache-Control"] = "public, max-age=3600"

        return response


class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """
    Warn about slow requests.

    Page requests wait on the upstream catalog, so this is where a slow
    upstream first becomes visible.
    """

    def __init__(
        self,
        app: ASGIApp,
        slow_request_threshold_ms: float = 1000.0,
    ) -> None:
        """
        Initialize performance monitoring middleware.

        Args:
            app: ASGI application instance
            slow_request_threshold_ms: Threshold in milliseconds for slow requests
        """
        super().__init__(app)
        self.slow_request_threshold_ms = slow_request_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        if duration_ms > self.slow_request_threshold_ms:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} "
                f"took {duration_ms:.2f}ms (threshold: {self.slow_request_threshold_ms}ms)",
                extra={
                    "extra_fields": {
                        "method": request.method,
                        "path": request.url.path,
                        "duration_ms": duration_ms,
                        "threshold_ms": self.slow_request_threshold_ms,
                    }
                },
            )

        return response


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Record request count and duration for every HTTP request.

    Args:
        app: ASGI application instance
        track_func: Called with ``method``, ``endpoint``, ``status_code`` and
            ``duration`` once the response is ready
    """

    def __init__(self, app: ASGIApp, track_func: Callable) -> None:
        super().__init__(app)
        self.track_func = track_func

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        self.track_func(
            method=request.method,
            endpoint=_endpoint_label(request),
            status_code=response.status_code,
            duration=duration,
        )
        return response
