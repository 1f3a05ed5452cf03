"""
Prometheus metrics for Scout API.

Exposes request counters, latency histograms, and search-specific
metrics that can be scraped by Prometheus at ``/health/metrics``.

Usage in ``app.py``::

    from src.api.metrics import PrometheusMiddleware
    app.add_middleware(PrometheusMiddleware)
"""

import re
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.utils.logging import get_logger


logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "scout_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "scout_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

SEARCH_IN_PROGRESS = Gauge(
    "scout_search_in_progress",
    "Number of search operations currently being processed",
    ["kind"],
)

SEARCH_TOTAL = Counter(
    "scout_search_total",
    "Total search operations",
    ["kind", "status"],
)

SEARCH_DURATION = Histogram(
    "scout_search_duration_seconds",
    "Search operation duration in seconds",
    ["kind"],
    buckets=(0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60, 120),
)

APP_INFO = Info(
    "scout",
    "Scout application information",
)


def set_app_info(version: str, environment: str) -> None:
    """Set application info metric (call once at startup)."""
    APP_INFO.info({"version": version, "environment": environment})


@contextmanager
def track_search(kind: str) -> Iterator[None]:
    """
    Count and time one search operation.

    ``kind`` is one of ``direct``, ``optimized``, ``agentic`` or ``suggest``.
    """
    SEARCH_IN_PROGRESS.labels(kind=kind).inc()
    start = time.perf_counter()
    status = "error"
    try:
        yield
        status = "success"
    finally:
        SEARCH_IN_PROGRESS.labels(kind=kind).dec()
        SEARCH_DURATION.labels(kind=kind).observe(time.perf_counter() - start)
        SEARCH_TOTAL.labels(kind=kind, status=status).inc()


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

_SESSION_SEGMENT = re.compile(r"/sessions/[^/]+")


def _normalise_path(path: str) -> str:
    """
    Collapse path parameters to reduce cardinality.

    ``/api/v1/sessions/abc-123/search`` → ``/api/v1/sessions/{session_id}/search``
    """
    return _SESSION_SEGMENT.sub("/sessions/{session_id}", path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that records Prometheus metrics per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        path = _normalise_path(request.url.path)

        # Skip metrics endpoint itself to avoid recursion noise
        if path.endswith("/metrics"):
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        status = str(response.status_code)
        REQUEST_COUNT.labels(method=method, endpoint=path, status_code=status).inc()
        REQUEST_LATENCY.labels(method=method, endpoint=path).observe(duration)

        return response


# ---------------------------------------------------------------------------
# /metrics endpoint helper
# ---------------------------------------------------------------------------

def metrics_response() -> Response:
    """Generate a Prometheus-format ``/metrics`` response."""
    body = generate_latest(REGISTRY)
    return Response(content=body, media_type=CONTENT_TYPE_LATEST)
