"""Wiring of the service graph from settings."""

from dataclasses import dataclass

from embedding_search.config import Settings, get_settings
from embedding_search.documents.vault import DocumentStore, FileSystemVault
from embedding_search.embeddings.service import EmbeddingService, HTTPEmbeddingService
from embedding_search.indexing.refresher import RefreshCoordinator, StartupRefresh
from embedding_search.query.connections import ConnectionsView
from embedding_search.query.service import QueryService
from embedding_search.retrieval.ranker import SimilarityEngine
from embedding_search.retrieval.staleness import StalenessPolicy
from embedding_search.vectorstore.service import EmbeddingStore


@dataclass
class Services:
    """Components sharing one vault, cache file and provider."""

    settings: Settings
    documents: DocumentStore
    store: EmbeddingStore
    embedder: EmbeddingService
    coordinator: RefreshCoordinator
    queries: QueryService
    connections: ConnectionsView
    startup: StartupRefresh

    async def aclose(self) -> None:
        """Release network resources."""
        if isinstance(self.embedder, HTTPEmbeddingService):
            await self.embedder.close()


def build_services(
    settings: Settings | None = None,
    documents: DocumentStore | None = None,
    embedder: EmbeddingService | None = None,
) -> Services:
    """Create the service graph.

    Args:
        settings: Configuration; defaults to environment settings.
        documents: Note collection; defaults to the configured vault root.
        embedder: Embedding provider; defaults to the HTTP provider.

    Returns:
        Wired services.
    """
    settings = settings or get_settings()
    documents = documents or FileSystemVault(settings.vault_root)
    embedder = embedder or HTTPEmbeddingService(settings=settings.embedding)
    store = EmbeddingStore(settings.cache_path, documents)
    policy = StalenessPolicy()
    engine = SimilarityEngine()

    coordinator = RefreshCoordinator(
        documents=documents,
        store=store,
        embedder=embedder,
        settings=settings.search,
        policy=policy,
    )
    return Services(
        settings=settings,
        documents=documents,
        store=store,
        embedder=embedder,
        coordinator=coordinator,
        queries=QueryService(
            documents=documents,
            store=store,
            embedder=embedder,
            coordinator=coordinator,
            settings=settings.search,
            engine=engine,
        ),
        connections=ConnectionsView(
            documents=documents,
            store=store,
            coordinator=coordinator,
            settings=settings.search,
            engine=engine,
            policy=policy,
        ),
        startup=StartupRefresh(coordinator, enabled=settings.search.auto_update_on_startup),
    )
