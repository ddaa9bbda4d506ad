"""
Custom middleware.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .config import get_settings
from .utils.metrics import REQUEST_COUNTER, REQUEST_LATENCY

logger = logging.getLogger(__name__)


def route_template(request: Request) -> str:
    """Matched route path (e.g. /api/v1/goals/{goal_id}), falling back to the raw path."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging with structured JSON logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time
        method = request.method
        route = route_template(request)

        logger.info(
            "HTTP request processed",
            extra={
                "method": method,
                "path": request.url.path,
                "route": route,
                "status_code": response.status_code,
                "response_time_ms": round(duration * 1000, 2),
            },
        )

        # Label by route template so ids don't explode metric cardinality
        REQUEST_COUNTER.labels(method=method, path=route).inc()
        REQUEST_LATENCY.labels(method=method, path=route).observe(duration)

        response.headers["X-Process-Time"] = str(duration)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if get_settings().ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
