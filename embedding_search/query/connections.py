"""Interactive "connections for this note" flow.

Shows whatever the cache already knows right away, then refreshes the
note's embedding if needed and shows the updated ranking.
"""

from collections.abc import AsyncIterator

from embedding_search.config import SearchSettings, get_settings
from embedding_search.documents.models import NoteFile
from embedding_search.documents.vault import DocumentStore
from embedding_search.exceptions import EmptyDocumentError, NotFoundError
from embedding_search.indexing.refresher import RefreshCoordinator
from embedding_search.logging_config import get_logger
from embedding_search.observability.metrics import track_search
from embedding_search.query.models import ConnectionsSnapshot
from embedding_search.retrieval.models import SimilarityResult
from embedding_search.retrieval.ranker import SimilarityEngine
from embedding_search.retrieval.staleness import INTERACTIVE_GRACE_MS, StalenessPolicy
from embedding_search.vectorstore.models import EmbeddingCache, LegacyEntry, StructuredEntry
from embedding_search.vectorstore.service import EmbeddingStore

logger = get_logger(__name__)

HEADER_CACHED = "Most similar files:"
HEADER_LEGACY = "Found old format embedding. Updating..."
HEADER_MISSING = "No cached embedding found. Calculating..."
HEADER_UPDATED = "Updated similar files:"
STATUS_UPDATED = "(Updated)"


class ConnectionsView:
    """Two-phase similar-notes view for a single note."""

    def __init__(
        self,
        documents: DocumentStore,
        store: EmbeddingStore,
        coordinator: RefreshCoordinator,
        settings: SearchSettings | None = None,
        engine: SimilarityEngine | None = None,
        policy: StalenessPolicy | None = None,
    ) -> None:
        self._documents = documents
        self._store = store
        self._coordinator = coordinator
        self._settings = settings or get_settings().search
        self._engine = engine or SimilarityEngine()
        self._policy = policy or StalenessPolicy()

    async def show(self, path: str) -> AsyncIterator[ConnectionsSnapshot]:
        """Yield the cached view, then the refreshed view if it changed.

        Raises:
            NotFoundError: If the note does not exist.
        """
        note = await self._documents.get(path)
        if note is None:
            raise NotFoundError(f"Note not found: {path}", details={"path": path})

        cache = await self._store.load()
        yield self.initial(note, cache)

        updated = await self.check_update(note, cache)
        if updated is not None:
            yield updated

    def initial(self, note: NoteFile, cache: EmbeddingCache) -> ConnectionsSnapshot:
        """Build the view from cached data only."""
        match cache.get(note.path):
            case LegacyEntry(embedding=vector):
                return ConnectionsSnapshot(
                    header=HEADER_LEGACY,
                    items=self._similar(note, vector, cache),
                )
            case StructuredEntry(embedding=vector) if vector is not None:
                return ConnectionsSnapshot(
                    header=HEADER_CACHED,
                    items=self._similar(note, vector, cache),
                )
            case _:
                return ConnectionsSnapshot(header=HEADER_MISSING, message=HEADER_MISSING)

    async def check_update(
        self,
        note: NoteFile,
        cache: EmbeddingCache,
    ) -> ConnectionsSnapshot | None:
        """Refresh the note if stale and return the new view.

        Returns:
            The updated view, or None when the cache was already current or
            the note is empty.
        """
        entry = cache.get(note.path)
        if not self._policy.needs_refresh(note, entry, grace_ms=INTERACTIVE_GRACE_MS):
            return None

        try:
            vector = await self._coordinator.ensure_fresh(
                note,
                cache,
                grace_ms=INTERACTIVE_GRACE_MS,
            )
        except EmptyDocumentError:
            logger.warning("Current note is empty. Skipping embedding update.")
            return None

        return ConnectionsSnapshot(
            header=HEADER_UPDATED,
            items=self._similar(note, vector, cache),
            status=STATUS_UPDATED,
        )

    def _similar(
        self,
        note: NoteFile,
        vector: list[float],
        cache: EmbeddingCache,
    ) -> list[SimilarityResult]:
        items = self._engine.rank(
            vector,
            cache,
            exclude_path=note.path,
            limit=self._settings.similarity_limit,
        )
        track_search("connections", len(items), items[0].score if items else 0.0)
        return items
