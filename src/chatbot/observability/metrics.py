from __future__ import annotations

"""Prometheus metrics for the chat backend.

Adds an HTTP middleware that records request latency per method/path/status.
Streaming responses are observed when their headers are sent, not when the
stream ends.
"""

import logging
import time
from typing import Awaitable, Callable

from prometheus_client import Histogram
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger(__name__)

# Histogram buckets chosen for web latencies (seconds)
REQUEST_LATENCY = Histogram(
    "chatbot_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path", "status"),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)


def sanitize_path(path: str) -> str:
    """Reduce high-cardinality paths (e.g. /api/chat/{id}/stream) to a coarse label.

    Keeps the first two static segments: ``/api/chat``, ``/auth/guest``, ``/health``.
    """
    if not path:
        return "/"
    segs = [s for s in path.split("?")[0].split("/") if s]
    if not segs:
        return "/"
    return "/" + "/".join(segs[:2])


def metrics_middleware_factory() -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        # Avoid observing the metrics endpoint itself
        if request.url.path.startswith("/metrics"):
            return await call_next(request)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        try:
            REQUEST_LATENCY.labels(
                method=request.method,
                path=sanitize_path(request.url.path),
                status=str(response.status_code),
            ).observe(elapsed)
        except ValueError:
            logger.debug("metrics_observe_failed", extra={"path": request.url.path})
        return response

    return middleware
