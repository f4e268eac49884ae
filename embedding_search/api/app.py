"""FastAPI application entry point.

Configures the application with logging, exception handling, health checks,
metrics and the JSON-RPC search endpoint.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from embedding_search import __version__
from embedding_search.api.rpc import RPCDispatcher, router
from embedding_search.config import Settings, get_settings
from embedding_search.exceptions import CorruptCacheError, EmbeddingSearchError, ErrorCode
from embedding_search.logging_config import get_logger, setup_logging
from embedding_search.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from embedding_search.services import Services, build_services

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    services: Services | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration; defaults to environment settings.
        services: Prebuilt service graph, mainly for tests.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or (services.settings if services else get_settings())
    owns_services = services is None
    services = services or build_services(settings)
    background: set[asyncio.Task[Any]] = set()

    def schedule_startup_refresh(source: str) -> None:
        if not services.settings.search.auto_update_on_startup or services.startup.started:
            return
        task = asyncio.create_task(services.startup.trigger(source))
        background.add(task)
        task.add_done_callback(background.discard)

    async def on_initialize() -> None:
        schedule_startup_refresh("client-initialize")

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        setup_logging(level=settings.log_level)
        logger.info(
            "Starting embedding search",
            extra={
                "version": __version__,
                "environment": settings.environment.value,
                "vault_root": str(settings.vault_root),
            },
        )
        schedule_startup_refresh("server-startup")

        yield

        logger.info("Shutting down embedding search")
        for task in list(background):
            task.cancel()
        if owns_services:
            await services.aclose()

    app = FastAPI(
        title="Embedding Search",
        description="Semantic similarity search over a vault of markdown notes",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.services = services
    app.state.dispatcher = RPCDispatcher(services.queries, on_initialize=on_initialize)

    app.add_middleware(MetricsMiddleware)
    app.add_exception_handler(EmbeddingSearchError, search_exception_handler)

    app.include_router(router)
    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Metrics"])

    return app


async def search_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Convert EmbeddingSearchError to a structured JSON response."""
    if not isinstance(exc, EmbeddingSearchError):
        return JSONResponse(
            status_code=500,
            content={"error": {"code": ErrorCode.INTERNAL_ERROR.value, "message": str(exc), "details": {}}},
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=_get_status_code(exc.code),
        content=exc.to_dict(),
    )


def _get_status_code(error_code: ErrorCode) -> int:
    """Map error code to HTTP status code."""
    if error_code == ErrorCode.VALIDATION_ERROR:
        return 400
    if error_code == ErrorCode.PROVIDER_AUTH_MISSING:
        return 401
    if error_code == ErrorCode.NOTE_NOT_FOUND:
        return 404
    if error_code == ErrorCode.NOTE_EMPTY:
        return 422
    if error_code in (
        ErrorCode.PROVIDER_HTTP_ERROR,
        ErrorCode.PROVIDER_BAD_RESPONSE,
        ErrorCode.PROVIDER_UNREACHABLE,
    ):
        return 502
    return 500


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Readiness probe.

    Checks that an API key is configured and the cache file loads.

    Returns:
        Readiness status with component checks.
    """
    services: Services = request.app.state.services
    checks: dict[str, str] = {}

    api_key = services.settings.embedding.api_key.get_secret_value()
    checks["api_key"] = "ok" if api_key.strip() else "missing"

    try:
        cache = await services.store.load()
        checks["cache"] = "ok"
        entries = len(cache)
    except CorruptCacheError as e:
        checks["cache"] = e.message
        entries = 0

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "cache_entries": entries,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Liveness probe.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())
