"""
Middleware for the statistics server.
"""

from mailstats.stats_server.middleware.metrics import (
    MetricsMiddleware,
    metrics_endpoint,
    record_batch,
    record_resolution,
)

__all__ = [
    "MetricsMiddleware",
    "metrics_endpoint",
    "record_batch",
    "record_resolution",
]
