"""
Prometheus metrics middleware for monitoring.

Provides:
- Request latency histograms
- Request counters by endpoint
- Active request gauge
- Resolution metrics (statistics per source, upstream failures, cache)
"""

import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import Counter, Gauge, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response as StarletteResponse

from mailstats import __version__
from mailstats.common.logger import get_logger

logger = get_logger(__name__)

# =============================================================================
# Prometheus Metrics Definitions
# =============================================================================

# Application info
APP_INFO = Info("mailstats_app", "MailStats application information")
APP_INFO.info({
    "version": __version__,
    "name": "mailstats",
    "description": "Campaign statistics resolution engine",
})

# HTTP request metrics
HTTP_REQUEST_TOTAL = Counter(
    "mailstats_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

HTTP_REQUEST_DURATION = Histogram(
    "mailstats_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0),
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "mailstats_http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method", "endpoint"],
)

# Resolution metrics
STATS_RESOLVED_TOTAL = Counter(
    "mailstats_statistics_resolved_total",
    "Campaign statistics resolved, by source",
    ["source"],
)

BATCH_SIZE = Histogram(
    "mailstats_enrich_batch_size",
    "Campaigns per enrichment batch",
    buckets=(1, 5, 10, 25, 50, 100, 250, 500),
)

BATCH_LATENCY = Histogram(
    "mailstats_enrich_batch_latency_seconds",
    "Enrichment batch latency",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0, 30.0),
)


# =============================================================================
# Metrics Middleware
# =============================================================================

class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware that collects Prometheus metrics for all HTTP requests.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request and record metrics."""
        method = request.method
        endpoint = self._get_endpoint(request)

        HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=endpoint).inc()

        start_time = time.perf_counter()
        status_code = 500  # Default to error

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as e:
            logger.error("Request error", error=str(e))
            raise
        finally:
            duration = time.perf_counter() - start_time

            HTTP_REQUEST_TOTAL.labels(
                method=method,
                endpoint=endpoint,
                status=str(status_code),
            ).inc()

            HTTP_REQUEST_DURATION.labels(
                method=method,
                endpoint=endpoint,
            ).observe(duration)

            HTTP_REQUESTS_IN_PROGRESS.labels(
                method=method,
                endpoint=endpoint,
            ).dec()

    def _get_endpoint(self, request: Request) -> str:
        """Get endpoint path, normalizing numeric path segments."""
        parts = request.url.path.split("/")
        return "/".join("{id}" if part.isdigit() else part for part in parts)


# =============================================================================
# Metrics Endpoint
# =============================================================================

async def metrics_endpoint() -> StarletteResponse:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    return StarletteResponse(
        content=generate_latest(),
        media_type="text/plain; charset=utf-8",
    )


# =============================================================================
# Helper Functions for Recording Resolution Metrics
# =============================================================================

def record_resolution(source: str) -> None:
    """Record one resolved campaign by source."""
    STATS_RESOLVED_TOTAL.labels(source=source).inc()


def record_batch(size: int, duration: float) -> None:
    """Record an enrichment batch."""
    BATCH_SIZE.observe(size)
    BATCH_LATENCY.observe(duration)
