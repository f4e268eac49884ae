"""Prometheus metrics for the embedding search service.

Provides metrics instrumentation for:
- HTTP request latency and counts
- Embedding provider latency and batch sizes
- Similarity search results and scores
- Refresh throughput and cache pruning
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from embedding_search.logging_config import get_logger

logger = get_logger(__name__)

# HTTP Request Metrics
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Number of inputs sent per embedding request",
    ["model"],
    buckets=[1, 2, 4, 8, 16, 32, 64, 128],
)

# Search Metrics
SEARCH_TOTAL = Counter(
    "similarity_searches_total",
    "Total similarity searches",
    ["operation"],
)

SEARCH_RESULTS_RETURNED = Histogram(
    "similarity_results_returned",
    "Number of notes returned per search",
    buckets=[0, 1, 2, 5, 10, 12, 20, 50],
)

SEARCH_TOP_SCORE = Histogram(
    "similarity_top_score",
    "Top cosine similarity per search",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# Refresh Metrics
REFRESH_NOTES_TOTAL = Counter(
    "refresh_notes_total",
    "Notes processed by embedding refreshes",
    ["outcome"],  # added, updated, skipped_empty
)

REFRESH_DURATION = Histogram(
    "refresh_duration_seconds",
    "Bulk refresh duration in seconds",
    ["status"],
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0],
)

# Cache Metrics
CACHE_PRUNED_TOTAL = Counter(
    "cache_pruned_entries_total",
    "Cache entries removed",
    ["reason"],  # ineligible, deleted, missing
)

CACHE_ENTRIES = Gauge(
    "cache_entries",
    "Entries in the embedding cache after the last load or save",
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        """Initialize the middleware."""
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and collect metrics."""
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        endpoint = self._normalize_endpoint(request.url.path)

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).observe(duration)

        HTTP_REQUEST_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        if path.startswith("/health"):
            return "/health"
        if path == "/mcp":
            return path
        return "other"


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        batch_size: Number of texts in the request.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)


def track_search(
    operation: str,
    results_returned: int,
    top_score: float,
) -> None:
    """Track a similarity search.

    Args:
        operation: Search kind (text, note, connections).
        results_returned: Number of notes returned.
        top_score: Highest similarity score.
    """
    SEARCH_TOTAL.labels(operation=operation).inc()
    SEARCH_RESULTS_RETURNED.observe(results_returned)
    if top_score > 0:
        SEARCH_TOP_SCORE.observe(top_score)


def track_refresh(
    added: int,
    updated: int,
    skipped_empty: int,
    duration: float,
    success: bool = True,
) -> None:
    """Track a bulk refresh run.

    Args:
        added: Notes embedded for the first time.
        updated: Notes re-embedded.
        skipped_empty: Notes skipped because they were empty.
        duration: Run duration in seconds.
        success: Whether every batch completed.
    """
    status = "success" if success else "error"

    REFRESH_DURATION.labels(status=status).observe(duration)
    REFRESH_NOTES_TOTAL.labels(outcome="added").inc(added)
    REFRESH_NOTES_TOTAL.labels(outcome="updated").inc(updated)
    REFRESH_NOTES_TOTAL.labels(outcome="skipped_empty").inc(skipped_empty)


def track_cache_pruned(reason: str, count: int) -> None:
    """Count cache entries removed for a given reason."""
    if count > 0:
        CACHE_PRUNED_TOTAL.labels(reason=reason).inc(count)


def set_cache_size(entries: int) -> None:
    """Record the current number of cache entries."""
    CACHE_ENTRIES.set(entries)
