"""Brute-force cosine similarity ranking over the embedding cache."""

from collections.abc import Sequence

from embedding_search.documents.models import display_name_for_path, is_note_path
from embedding_search.logging_config import get_logger
from embedding_search.retrieval.models import SimilarityResult
from embedding_search.vectorstore.models import EmbeddingCache, vector_of
from embedding_search.vectorstore.vectormath import cosine_similarity

logger = get_logger(__name__)


class SimilarityEngine:
    """Ranks cached notes by similarity to a query vector.

    Every entry is scored on each query; caches are personal note
    collections, so a linear scan is fast enough.
    """

    def rank(
        self,
        query_vector: Sequence[float],
        cache: EmbeddingCache,
        exclude_path: str | None = None,
        limit: int | None = None,
    ) -> list[SimilarityResult]:
        """Rank cache entries against a query vector.

        Args:
            query_vector: Vector to compare against.
            cache: Embedding cache to search.
            exclude_path: Note to leave out, typically the query note itself.
            limit: Maximum number of results; None returns all.

        Returns:
            Results ordered by descending score, ties broken by path.
        """
        results: list[SimilarityResult] = []
        for path, entry in cache.items():
            if exclude_path and path == exclude_path:
                continue
            if not is_note_path(path):
                continue
            vector = vector_of(entry)
            if vector is None:
                continue
            results.append(
                SimilarityResult(
                    path=path,
                    display_name=display_name_for_path(path),
                    score=cosine_similarity(query_vector, vector),
                )
            )

        results.sort(key=lambda r: (-r.score, r.path))

        logger.debug(
            f"Ranked {len(results)} notes",
            extra={"exclude_path": exclude_path, "limit": limit},
        )

        if limit is not None:
            return results[:limit]
        return results
