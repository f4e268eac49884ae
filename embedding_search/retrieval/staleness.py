"""Cache staleness rules."""

from embedding_search.documents.models import NoteFile, parse_timestamp
from embedding_search.retrieval.models import UpdateReason
from embedding_search.vectorstore.models import CacheEntry, LegacyEntry, StructuredEntry

# Tolerance applied by the interactive connections view so that storage
# timestamp rounding does not trigger a re-embed on every open.
INTERACTIVE_GRACE_MS = 1000


class StalenessPolicy:
    """Decides whether a note's cached embedding must be regenerated."""

    def classify(
        self,
        note: NoteFile,
        entry: CacheEntry | None,
        only_consider_new: bool = False,
        grace_ms: int = 0,
    ) -> UpdateReason | None:
        """Classify a cache entry against its note.

        Args:
            note: The note on disk.
            entry: Its cache entry, if any.
            only_consider_new: Only report notes with no entry at all.
            grace_ms: Milliseconds the note may be newer than the stored
                timestamp before it counts as modified. Bulk refresh uses 0.

        Returns:
            The reason a refresh is needed, or None if the entry is current.
        """
        if entry is None:
            return UpdateReason.NEW
        if only_consider_new:
            return None

        match entry:
            case LegacyEntry():
                return UpdateReason.OLD_FORMAT
            case StructuredEntry(embedding=embedding, last_updated=last_updated):
                if not last_updated or embedding is None:
                    return UpdateReason.MISSING_DATA
                stored_ms = parse_timestamp(last_updated)
                if stored_ms is None:
                    return UpdateReason.INVALID_TIMESTAMP
                if note.mtime_ms > stored_ms + grace_ms:
                    return UpdateReason.MODIFIED
                return None

        return UpdateReason.MISSING_DATA

    def needs_refresh(
        self,
        note: NoteFile,
        entry: CacheEntry | None,
        grace_ms: int = 0,
    ) -> bool:
        """Shorthand for ``classify(...) is not None``."""
        return self.classify(note, entry, grace_ms=grace_ms) is not None
