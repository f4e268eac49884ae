"""Observability module for metrics and monitoring."""

from embedding_search.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
    set_cache_size,
    track_cache_pruned,
    track_embedding_request,
    track_refresh,
    track_search,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "get_metrics_content_type",
    "set_cache_size",
    "track_cache_pruned",
    "track_embedding_request",
    "track_refresh",
    "track_search",
]
