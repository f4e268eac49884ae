"""Tests for observability module."""

from fastapi import FastAPI
from httpx import AsyncClient

from embedding_search.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    set_cache_size,
    track_cache_pruned,
    track_embedding_request,
    track_refresh,
    track_search,
)


class TestMetricsEndpoint:
    """Tests for /metrics endpoint."""

    async def test_metrics_endpoint_returns_prometheus_format(self, client: AsyncClient) -> None:
        """Metrics endpoint returns Prometheus format."""
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert b"# HELP" in response.content

    async def test_requests_are_counted(self, client: AsyncClient) -> None:
        """HTTP requests are recorded by the middleware."""
        await client.get("/health")
        response = await client.get("/metrics")

        assert 'endpoint="/health"' in response.text


class TestMetricsFunctions:
    """Tests for metrics tracking functions."""

    def test_get_metrics_returns_bytes(self) -> None:
        """get_metrics returns bytes."""
        assert isinstance(get_metrics(), bytes)

    def test_track_embedding_request(self) -> None:
        """track_embedding_request records latency and batch size."""
        track_embedding_request(model="test-model", duration=0.2, batch_size=4, success=True)
        track_embedding_request(model="test-model", duration=0.1, batch_size=1, success=False)

        metrics = get_metrics().decode()
        assert "embedding_request_duration_seconds" in metrics
        assert "embedding_batch_size" in metrics
        assert 'status="error"' in metrics

    def test_track_search(self) -> None:
        """track_search records result count and top score."""
        track_search("text", results_returned=3, top_score=0.82)

        metrics = get_metrics().decode()
        assert 'similarity_searches_total{operation="text"}' in metrics
        assert "similarity_top_score" in metrics

    def test_track_refresh(self) -> None:
        """track_refresh records note outcomes."""
        track_refresh(added=2, updated=1, skipped_empty=1, duration=0.5, success=True)

        metrics = get_metrics().decode()
        assert 'refresh_notes_total{outcome="added"}' in metrics
        assert 'refresh_notes_total{outcome="skipped_empty"}' in metrics

    def test_track_cache_pruned_and_size(self) -> None:
        """Cache pruning and size are exported."""
        track_cache_pruned("deleted", 2)
        set_cache_size(7)

        metrics = get_metrics().decode()
        assert 'cache_pruned_entries_total{reason="deleted"}' in metrics
        assert "cache_entries 7.0" in metrics


class TestEndpointNormalization:
    """Tests for path label normalization."""

    def test_normalize(self) -> None:
        """Paths collapse to a small label set."""
        middleware = MetricsMiddleware(FastAPI())
        assert middleware._normalize_endpoint("/health/ready") == "/health"
        assert middleware._normalize_endpoint("/mcp") == "/mcp"
        assert middleware._normalize_endpoint("/anything/else") == "other"
