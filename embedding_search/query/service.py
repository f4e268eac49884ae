"""Search operations shared by the CLI and the JSON-RPC server."""

import math
from typing import Any

from embedding_search.config import SearchSettings, get_settings
from embedding_search.documents.models import NOTE_EXTENSION, NoteFile, is_note_path
from embedding_search.documents.vault import DocumentStore
from embedding_search.embeddings.service import EmbeddingService
from embedding_search.exceptions import (
    ErrorCode,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from embedding_search.indexing.refresher import RefreshCoordinator
from embedding_search.logging_config import get_logger
from embedding_search.observability.metrics import track_search
from embedding_search.query.models import (
    NoteContent,
    NoteSearchResponse,
    SearchHit,
    TextSearchResponse,
)
from embedding_search.retrieval.models import SimilarityResult
from embedding_search.retrieval.ranker import SimilarityEngine
from embedding_search.vectorstore.models import EmbeddingCache
from embedding_search.vectorstore.service import EmbeddingStore

logger = get_logger(__name__)


def _required(value: Any, field: str) -> str:
    text = str(value if value is not None else "").strip()
    if not text:
        raise ValidationError(f"{field} is required", details={"field": field})
    return text


class QueryService:
    """Similarity search over the embedding cache.

    Operations are independent; each loads the cache it needs.
    """

    def __init__(
        self,
        documents: DocumentStore,
        store: EmbeddingStore,
        embedder: EmbeddingService,
        coordinator: RefreshCoordinator,
        settings: SearchSettings | None = None,
        engine: SimilarityEngine | None = None,
    ) -> None:
        """Initialize the query service.

        Args:
            documents: Note collection.
            store: Embedding cache persistence.
            embedder: Embedding provider for free-text queries.
            coordinator: Refreshes the query note before note searches.
            settings: Result limits and content truncation.
            engine: Similarity ranking.
        """
        self._documents = documents
        self._store = store
        self._embedder = embedder
        self._coordinator = coordinator
        self._settings = settings or get_settings().search
        self._engine = engine or SimilarityEngine()

    def normalize_limit(self, limit: Any) -> int:
        """Coerce a caller-supplied limit, falling back to the default."""
        if limit is None or isinstance(limit, bool):
            return self._settings.similarity_limit
        try:
            parsed = float(limit)
        except (TypeError, ValueError):
            return self._settings.similarity_limit
        if math.isfinite(parsed) and parsed > 0:
            return math.floor(parsed)
        return self._settings.similarity_limit

    async def search_by_text(self, query: Any, limit: Any = None) -> TextSearchResponse:
        """Find notes similar to a free-text query.

        Raises:
            ValidationError: If the query is blank.
            ProviderError: If the query cannot be embedded.
        """
        text = _required(query, "query")
        count = self.normalize_limit(limit)

        vector = await self._embedder.embed_one(text)
        if vector is None:
            raise ProviderError(
                "Failed to generate embedding for query",
                code=ErrorCode.PROVIDER_BAD_RESPONSE,
            )

        cache, pruned = await self._store.load_with_pruned()
        ranked = self._engine.rank(vector, cache, limit=count)
        hits, missing = await self._resolve_hits(ranked, cache, pruned)
        track_search("text", len(hits), hits[0].score if hits else 0.0)
        return TextSearchResponse(query=text, results=hits, missing_paths=missing)

    async def search_by_note(self, note: Any, limit: Any = None) -> NoteSearchResponse:
        """Find notes similar to an existing note.

        The query note is re-embedded first if its cache entry is stale.

        Raises:
            ValidationError: If the identifier is blank.
            NotFoundError: If no note matches the identifier.
        """
        identifier = _required(note, "note")
        count = self.normalize_limit(limit)

        note_file = await self.resolve_note(identifier)
        cache, pruned = await self._store.load_with_pruned()
        vector = await self._coordinator.ensure_fresh(note_file, cache)
        ranked = self._engine.rank(
            vector,
            cache,
            exclude_path=note_file.path,
            limit=count,
        )
        hits, missing = await self._resolve_hits(ranked, cache, pruned)
        track_search("note", len(hits), hits[0].score if hits else 0.0)
        return NoteSearchResponse(note=note_file.path, results=hits, missing_paths=missing)

    async def fetch_note(self, path: Any) -> NoteContent:
        """Return the raw content of a note at an exact path.

        Raises:
            ValidationError: If the path is blank.
            NotFoundError: If no file exists at the path.
        """
        note_path = _required(path, "path")
        note = await self._documents.get(note_path)
        if note is None:
            raise NotFoundError(f"Note not found: {note_path}", details={"path": note_path})
        content = await self._documents.read(note)
        return NoteContent(path=note.path, content=content)

    async def resolve_note(self, identifier: str) -> NoteFile:
        """Resolve a note title or path to a note.

        Tries the exact path, then the path with ``.md`` appended, then a
        note whose file name matches (shallowest path first).

        Raises:
            NotFoundError: If nothing matches.
        """
        candidates = [identifier]
        if not identifier.endswith(NOTE_EXTENSION):
            candidates.append(f"{identifier}{NOTE_EXTENSION}")

        for candidate in candidates:
            if not is_note_path(candidate):
                continue
            found = await self._documents.get(candidate)
            if found is not None:
                return found

        names = {c.rsplit("/", 1)[-1] for c in candidates if is_note_path(c)}
        matches = [n for n in await self._documents.list_notes() if n.basename in names]
        if matches:
            matches.sort(key=lambda n: (n.path.count("/"), n.path))
            return matches[0]

        raise NotFoundError(f"Note not found: {identifier}", details={"note": identifier})

    async def _resolve_hits(
        self,
        ranked: list[SimilarityResult],
        cache: EmbeddingCache,
        pruned: list[str],
    ) -> tuple[list[SearchHit], list[str]]:
        """Attach note content to ranked results.

        Results whose notes have disappeared are dropped, reported, and
        removed from the cache file. Keys already pruned on load for the
        same reason are reported first.
        """
        hits: list[SearchHit] = []
        vanished: list[str] = []

        for result in ranked:
            note = await self._documents.get(result.path)
            if note is None:
                vanished.append(result.path)
                continue
            try:
                content = await self._documents.read(note)
            except NotFoundError:
                vanished.append(result.path)
                continue

            truncated = len(content) >= self._settings.truncate_threshold
            hits.append(
                SearchHit(
                    path=note.path,
                    score=result.score,
                    content=content[: self._settings.preview_chars] if truncated else content,
                    truncated=truncated,
                )
            )

        if vanished:
            logger.warning(
                f"Pruning {len(vanished)} cached notes that no longer exist",
                extra={"missing_paths": vanished},
            )
            await self._store.remove(cache, vanished)

        missing = list(pruned) + [path for path in vanished if path not in pruned]
        return hits, missing
