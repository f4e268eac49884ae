"""Tests for the embedding cache and vector math."""

import json
import math
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from embedding_search.exceptions import CacheWriteError, CorruptCacheError
from embedding_search.vectorstore.models import LegacyEntry, StructuredEntry, vector_of
from embedding_search.vectorstore.service import EmbeddingStore, parse_entry, serialize_cache
from embedding_search.vectorstore.vectormath import cosine_similarity


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_vectors(self) -> None:
        """A vector is fully similar to itself."""
        assert cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self) -> None:
        """Orthogonal vectors score zero."""
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_opposite_vectors(self) -> None:
        """Opposite vectors score minus one."""
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_symmetric_and_scale_invariant(self) -> None:
        """Order and positive scaling do not change the score."""
        a, b = [1.0, 2.0, 3.0], [2.0, 0.5, -1.0]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))
        assert cosine_similarity([x * 7 for x in a], b) == pytest.approx(cosine_similarity(a, b))

    def test_degenerate_inputs(self) -> None:
        """Missing, mismatched or zero vectors score zero."""
        assert cosine_similarity(None, [1.0]) == 0.0
        assert cosine_similarity([1.0], None) == 0.0
        assert cosine_similarity([1.0, 2.0], [1.0]) == 0.0
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
        assert cosine_similarity([], []) == 0.0

    def test_bounded(self) -> None:
        """Scores stay within [-1, 1]."""
        score = cosine_similarity([0.1, 0.9, -0.4], [0.8, -0.2, 0.3])
        assert -1.0 <= score <= 1.0
        assert not math.isnan(score)


class TestCacheEntries:
    """Tests for cache entry parsing and serialization."""

    def test_parse_legacy(self) -> None:
        """A bare array is a legacy entry."""
        entry = parse_entry("a.md", [0.1, 2])
        assert isinstance(entry, LegacyEntry)
        assert entry.embedding == [0.1, 2.0]

    def test_parse_structured(self) -> None:
        """An object is a structured entry."""
        entry = parse_entry("a.md", {"embedding": [1, 0], "last_updated": "2024-01-01T00:00:00.000Z"})
        assert isinstance(entry, StructuredEntry)
        assert entry.last_updated == "2024-01-01T00:00:00.000Z"
        assert vector_of(entry) == [1.0, 0.0]

    def test_parse_structured_damaged_fields(self) -> None:
        """Damaged fields are kept as missing rather than rejected."""
        entry = parse_entry("a.md", {"embedding": "oops"})
        assert isinstance(entry, StructuredEntry)
        assert entry.embedding is None
        assert entry.last_updated is None

    @pytest.mark.parametrize("value", ["text", 3, None, [1, "x"]])
    def test_parse_invalid(self, value: object) -> None:
        """Other shapes are rejected."""
        with pytest.raises(CorruptCacheError):
            parse_entry("a.md", value)

    def test_serialize_preserves_legacy_shape(self) -> None:
        """Legacy entries are written back as bare arrays."""
        text = serialize_cache(
            {
                "old.md": LegacyEntry(embedding=[0.5]),
                "new.md": StructuredEntry(embedding=[1.0], last_updated="2024-01-01T00:00:00.000Z"),
            }
        )
        data = json.loads(text)
        assert data["old.md"] == [0.5]
        assert data["new.md"] == {"embedding": [1.0], "last_updated": "2024-01-01T00:00:00.000Z"}
        assert '\n  "old.md"' in text


class TestEmbeddingStore:
    """Tests for EmbeddingStore."""

    async def test_load_creates_missing_file(self, store: EmbeddingStore) -> None:
        """A missing cache file is created empty."""
        cache = await store.load()

        assert cache == {}
        assert json.loads(store.path.read_text(encoding="utf-8")) == {}

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("", "embeddings.json is empty."),
            ("   \n", "embeddings.json is empty."),
            ("{not json", "embeddings.json contains invalid JSON."),
            ("[1, 2]", "embeddings.json must contain a JSON object."),
        ],
    )
    async def test_load_corrupt(self, store: EmbeddingStore, content: str, message: str) -> None:
        """Blank, invalid or non-object files are rejected without being overwritten."""
        store.path.write_text(content, encoding="utf-8")

        with pytest.raises(CorruptCacheError) as exc_info:
            await store.load()

        assert exc_info.value.message == message
        assert store.path.read_text(encoding="utf-8") == content

    async def test_load_prunes_deleted_and_ineligible(
        self,
        store: EmbeddingStore,
        write_note: Callable[..., Path],
    ) -> None:
        """Entries for missing or non-note paths are pruned and saved."""
        write_note("kept.md", "text")
        store.path.write_text(
            json.dumps(
                {
                    "kept.md": [1.0, 0.0],
                    "deleted.md": [0.0, 1.0],
                    "image.png": [0.5, 0.5],
                }
            ),
            encoding="utf-8",
        )

        cache = await store.load()

        assert list(cache) == ["kept.md"]
        on_disk = json.loads(store.path.read_text(encoding="utf-8"))
        assert list(on_disk) == ["kept.md"]

    async def test_load_with_pruned_reports_deleted_keys(
        self,
        store: EmbeddingStore,
        write_note: Callable[..., Path],
    ) -> None:
        """Keys pruned for deleted notes are returned; non-note keys are not."""
        write_note("kept.md", "text")
        store.path.write_text(
            json.dumps({"kept.md": [1.0], "deleted.md": [0.5], "image.png": [0.5]}),
            encoding="utf-8",
        )

        cache, pruned = await store.load_with_pruned()

        assert list(cache) == ["kept.md"]
        assert pruned == ["deleted.md"]

    async def test_save_and_reload(
        self,
        store: EmbeddingStore,
        write_note: Callable[..., Path],
    ) -> None:
        """Saved entries load back with their shapes intact."""
        write_note("a.md", "A")
        write_note("b.md", "B")
        await store.save(
            {
                "a.md": LegacyEntry(embedding=[0.1, 0.2]),
                "b.md": StructuredEntry(embedding=[0.3, 0.4], last_updated="2024-02-03T04:05:06.007Z"),
            }
        )

        cache = await store.load()

        assert cache["a.md"] == LegacyEntry(embedding=[0.1, 0.2])
        assert cache["b.md"] == StructuredEntry(
            embedding=[0.3, 0.4],
            last_updated="2024-02-03T04:05:06.007Z",
        )

    async def test_save_leaves_no_temp_files(self, store: EmbeddingStore) -> None:
        """Atomic save replaces the file without leftovers."""
        await store.save({})
        await store.save({})

        leftovers = [p.name for p in store.path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    async def test_save_failure(self, store: EmbeddingStore) -> None:
        """Write failures surface as CacheWriteError."""
        with patch("embedding_search.vectorstore.service.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(CacheWriteError, match="disk full"):
                await store.save({})

    async def test_remove(
        self,
        store: EmbeddingStore,
        write_note: Callable[..., Path],
    ) -> None:
        """Removing entries persists the smaller cache."""
        write_note("a.md", "A")
        write_note("b.md", "B")
        cache = {
            "a.md": StructuredEntry(embedding=[1.0], last_updated="2024-01-01T00:00:00.000Z"),
            "b.md": StructuredEntry(embedding=[1.0], last_updated="2024-01-01T00:00:00.000Z"),
        }

        removed = await store.remove(cache, ["b.md", "unknown.md"])

        assert removed == 1
        assert list(cache) == ["a.md"]
        assert list(json.loads(store.path.read_text(encoding="utf-8"))) == ["a.md"]
