"""JSON file-backed embedding cache."""

import asyncio
import json
import os
import tempfile
from collections.abc import Iterable
from numbers import Real
from pathlib import Path
from typing import Any

from embedding_search.documents.models import is_note_path
from embedding_search.documents.vault import DocumentStore
from embedding_search.exceptions import CacheWriteError, CorruptCacheError
from embedding_search.logging_config import get_logger
from embedding_search.observability.metrics import set_cache_size, track_cache_pruned
from embedding_search.vectorstore.models import (
    CacheEntry,
    EmbeddingCache,
    LegacyEntry,
    StructuredEntry,
)

logger = get_logger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _as_vector(value: Any) -> list[float] | None:
    if isinstance(value, list) and all(_is_number(v) for v in value):
        return [float(v) for v in value]
    return None


def parse_entry(key: str, value: Any) -> CacheEntry:
    """Convert one decoded JSON value into a cache entry.

    Args:
        key: Note path the value is stored under.
        value: Decoded JSON value.

    Returns:
        LegacyEntry for bare arrays, StructuredEntry for objects.

    Raises:
        CorruptCacheError: If the value is neither shape.
    """
    if isinstance(value, list):
        vector = _as_vector(value)
        if vector is None:
            raise CorruptCacheError(
                f"Cache entry for {key} is not a list of numbers.",
                details={"path": key},
            )
        return LegacyEntry(embedding=vector)

    if isinstance(value, dict):
        # Damaged fields become None so the staleness policy schedules a refresh.
        last_updated = value.get("last_updated")
        if last_updated is not None and not isinstance(last_updated, str):
            last_updated = str(last_updated)
        return StructuredEntry(
            embedding=_as_vector(value.get("embedding")),
            last_updated=last_updated,
        )

    raise CorruptCacheError(
        f"Cache entry for {key} must be an array or an object.",
        details={"path": key, "type": type(value).__name__},
    )


def serialize_cache(cache: EmbeddingCache) -> str:
    """Render a cache as pretty-printed JSON."""
    data = {path: entry.to_json() for path, entry in cache.items()}
    return json.dumps(data, indent=2, ensure_ascii=False)


class EmbeddingStore:
    """Whole-file persistence for the embedding cache.

    The cache is always loaded and saved in full. Loading prunes entries
    whose notes are ineligible or no longer exist.
    """

    def __init__(self, path: str | Path, documents: DocumentStore) -> None:
        """Initialize the store.

        Args:
            path: Location of the cache file.
            documents: Note collection used to validate keys.
        """
        self.path = Path(path)
        self._documents = documents

    @property
    def name(self) -> str:
        """Cache file name, used in error messages."""
        return self.path.name

    def _read_raw(self) -> str:
        if not self.path.exists():
            logger.info(f"Creating empty embedding cache at {self.path}")
            self._write_raw(serialize_cache({}))
        return self.path.read_text(encoding="utf-8")

    def _write_raw(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _decode(self, raw: str) -> EmbeddingCache:
        if not raw.strip():
            raise CorruptCacheError(
                f"{self.name} is empty.",
                details={"path": str(self.path)},
            )
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptCacheError(
                f"{self.name} contains invalid JSON.",
                details={"path": str(self.path), "error": str(e)},
            ) from e
        if not isinstance(data, dict):
            raise CorruptCacheError(
                f"{self.name} must contain a JSON object.",
                details={"path": str(self.path), "type": type(data).__name__},
            )
        return {key: parse_entry(key, value) for key, value in data.items()}

    async def load(self) -> EmbeddingCache:
        """Load the full cache, pruning stale keys.

        Returns:
            The cache mapping.

        Raises:
            CorruptCacheError: If the file is blank, invalid JSON, or not an object.
        """
        cache, _ = await self.load_with_pruned()
        return cache

    async def load_with_pruned(self) -> tuple[EmbeddingCache, list[str]]:
        """Load the full cache and report keys dropped for deleted notes.

        Returns:
            The cache mapping and the pruned keys whose notes no longer exist.

        Raises:
            CorruptCacheError: If the file is blank, invalid JSON, or not an object.
        """
        raw = await asyncio.to_thread(self._read_raw)
        cache = self._decode(raw)

        ineligible = [key for key in cache if not is_note_path(key)]
        for key in ineligible:
            del cache[key]

        existing = {note.path for note in await self._documents.list_notes()}
        deleted = [key for key in cache if key not in existing]
        for key in deleted:
            del cache[key]

        if ineligible or deleted:
            logger.info(
                f"Pruned {len(ineligible) + len(deleted)} cache entries",
                extra={"ineligible": len(ineligible), "deleted": len(deleted)},
            )
            track_cache_pruned("ineligible", len(ineligible))
            track_cache_pruned("deleted", len(deleted))
            await self.save(cache)
        else:
            set_cache_size(len(cache))

        return cache, deleted

    async def save(self, cache: EmbeddingCache) -> None:
        """Persist the entire cache atomically.

        Raises:
            CacheWriteError: If the file cannot be written.
        """
        text = serialize_cache(cache)
        try:
            await asyncio.to_thread(self._write_raw, text)
        except OSError as e:
            raise CacheWriteError(
                f"Failed to write {self.name}: {e}",
                details={"path": str(self.path), "error": str(e)},
            ) from e
        set_cache_size(len(cache))
        logger.debug(f"Saved {len(cache)} cache entries", extra={"path": str(self.path)})

    async def remove(self, cache: EmbeddingCache, paths: Iterable[str]) -> int:
        """Drop entries from the cache and persist if anything changed.

        Returns:
            Number of entries removed.
        """
        removed = 0
        for path in paths:
            if cache.pop(path, None) is not None:
                removed += 1
        if removed:
            track_cache_pruned("missing", removed)
            await self.save(cache)
        return removed
