"""Bulk and single-note embedding refresh."""

import time

from embedding_search.config import SearchSettings, get_settings
from embedding_search.documents.models import NoteFile, is_note_path, should_ignore_path
from embedding_search.documents.vault import DocumentStore
from embedding_search.embeddings.service import EmbeddingService
from embedding_search.exceptions import (
    BatchIntegrityError,
    EmbeddingSearchError,
    EmptyDocumentError,
    ErrorCode,
    ProviderError,
)
from embedding_search.indexing.models import RefreshReport, UpdateTarget
from embedding_search.logging_config import get_logger
from embedding_search.observability.metrics import track_refresh
from embedding_search.retrieval.staleness import StalenessPolicy
from embedding_search.vectorstore.models import EmbeddingCache, StructuredEntry, vector_of
from embedding_search.vectorstore.service import EmbeddingStore

logger = get_logger(__name__)


class RefreshCoordinator:
    """Keeps the embedding cache in step with the vault.

    Batches run strictly one after another and the cache file is rewritten
    after each one, so a failure loses at most the batch in flight.
    """

    def __init__(
        self,
        documents: DocumentStore,
        store: EmbeddingStore,
        embedder: EmbeddingService,
        settings: SearchSettings | None = None,
        policy: StalenessPolicy | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            documents: Note collection.
            store: Embedding cache persistence.
            embedder: Embedding provider.
            settings: Batch size and ignore rules.
            policy: Staleness rules.
        """
        self._documents = documents
        self._store = store
        self._embedder = embedder
        self._settings = settings or get_settings().search
        self._policy = policy or StalenessPolicy()

    def _is_candidate(self, note: NoteFile) -> bool:
        return is_note_path(note.path) and not should_ignore_path(
            note.path, self._settings.ignore_substrings
        )

    def collect_targets(
        self,
        notes: list[NoteFile],
        cache: EmbeddingCache,
        only_new: bool = False,
    ) -> list[UpdateTarget]:
        """Select notes whose embeddings are missing or stale."""
        targets: list[UpdateTarget] = []
        for note in notes:
            if not self._is_candidate(note):
                continue
            reason = self._policy.classify(note, cache.get(note.path), only_new)
            if reason is not None:
                targets.append(UpdateTarget(note=note, reason=reason))
        return targets

    async def refresh_all(self, only_new: bool = False) -> RefreshReport:
        """Embed every new or stale note.

        Args:
            only_new: Only embed notes without any cache entry.

        Returns:
            Counts of added and updated entries.

        Raises:
            AuthError: If no API key is configured.
            ProviderError: If an embedding request fails.
            BatchIntegrityError: If a batch result does not match its inputs.
            CorruptCacheError: If the cache file cannot be loaded.
        """
        start = time.perf_counter()
        notes = await self._documents.list_notes()
        cache = await self._store.load()
        targets = self.collect_targets(notes, cache, only_new)
        report = RefreshReport(total=len(notes), queued=len(targets))

        if not targets:
            logger.info("No notes need an embedding update")
            return report

        logger.info(
            f"Queued {len(targets)} of {len(notes)} notes for embedding",
            extra={"only_new": only_new, "reasons": [t.reason.value for t in targets]},
        )

        batch_size = self._settings.batch_size
        success = False
        try:
            for offset in range(0, len(targets), batch_size):
                batch = targets[offset : offset + batch_size]
                await self._run_batch(batch, cache, report)
            success = True
        finally:
            track_refresh(
                added=report.added,
                updated=report.updated,
                skipped_empty=report.skipped_empty,
                duration=time.perf_counter() - start,
                success=success,
            )

        logger.info(
            report.summary(),
            extra={"added": report.added, "updated": report.updated},
        )
        return report

    async def _run_batch(
        self,
        batch: list[UpdateTarget],
        cache: EmbeddingCache,
        report: RefreshReport,
    ) -> None:
        """Embed one batch and checkpoint the cache."""
        notes: list[NoteFile] = []
        contents: list[str] = []
        for target in batch:
            text = (await self._documents.read(target.note)).strip()
            if not text:
                logger.info(f"Skipping empty note: {target.note.path}")
                report.skipped_empty += 1
                continue
            notes.append(target.note)
            contents.append(text)

        if not contents:
            return

        vectors = await self._embedder.embed_many(contents)
        if len(vectors) != len(contents):
            raise BatchIntegrityError(
                details={"sent": len(contents), "received": len(vectors)},
            )

        for note, vector in zip(notes, vectors, strict=True):
            if vector is None:
                continue
            is_new = note.path not in cache
            cache[note.path] = StructuredEntry(
                embedding=vector,
                last_updated=note.modified_iso,
            )
            if is_new:
                report.added += 1
            else:
                report.updated += 1

        await self._store.save(cache)
        report.batches += 1
        logger.debug(
            f"Checkpointed batch {report.batches}",
            extra={"size": len(contents), "added": report.added, "updated": report.updated},
        )

    async def ensure_fresh(
        self,
        note: NoteFile,
        cache: EmbeddingCache,
        grace_ms: int = 0,
    ) -> list[float]:
        """Return a current embedding for one note, refreshing it if stale.

        Args:
            note: Note to embed.
            cache: Loaded cache; updated in place and saved on refresh.
            grace_ms: Tolerance passed to the staleness policy.

        Returns:
            The note's embedding.

        Raises:
            EmptyDocumentError: If the note is empty.
            ProviderError: If the provider returns no embedding.
        """
        entry = cache.get(note.path)
        reason = self._policy.classify(note, entry, grace_ms=grace_ms)
        if reason is None:
            cached = vector_of(entry)
            if cached is None:
                raise EmbeddingSearchError(
                    f"Missing embedding for {note.path}",
                    details={"path": note.path},
                )
            return cached

        logger.info(
            f"Refreshing embedding for {note.path}",
            extra={"reason": reason.value},
        )
        text = (await self._documents.read(note)).strip()
        if not text:
            raise EmptyDocumentError(
                f"Note is empty: {note.path}",
                details={"path": note.path},
            )

        vector = await self._embedder.embed_one(text)
        if vector is None:
            raise ProviderError(
                f"Failed to generate embedding for {note.path}",
                code=ErrorCode.PROVIDER_BAD_RESPONSE,
                details={"path": note.path},
            )

        cache[note.path] = StructuredEntry(embedding=vector, last_updated=note.modified_iso)
        await self._store.save(cache)
        return vector


class StartupRefresh:
    """Runs the startup refresh at most once.

    Several lifecycle signals may call ``trigger``; the flag is checked and
    set before the first await, so only the first caller proceeds.
    """

    def __init__(self, coordinator: RefreshCoordinator, enabled: bool) -> None:
        """Initialize the guard.

        Args:
            coordinator: Coordinator that performs the refresh.
            enabled: Whether startup refresh is configured at all.
        """
        self._coordinator = coordinator
        self._enabled = enabled
        self._started = False

    @property
    def started(self) -> bool:
        """Whether a startup refresh has been launched."""
        return self._started

    async def trigger(self, source: str) -> RefreshReport | None:
        """Run the startup refresh unless disabled or already started.

        Args:
            source: Name of the signal that fired, for logging.

        Returns:
            The refresh report, or None if nothing ran or the refresh failed.
        """
        if not self._enabled:
            logger.debug("Auto update on startup disabled")
            return None
        if self._started:
            return None
        self._started = True

        logger.info(f"Auto update on startup triggered ({source})")
        try:
            return await self._coordinator.refresh_all()
        except EmbeddingSearchError as e:
            logger.error(
                f"Auto update failed: {e.message}",
                extra={"error_code": e.code.value, "details": e.details},
            )
            return None
