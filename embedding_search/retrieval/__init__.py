"""Similarity ranking and staleness module."""

from embedding_search.retrieval.models import SimilarityResult, UpdateReason
from embedding_search.retrieval.ranker import SimilarityEngine
from embedding_search.retrieval.staleness import INTERACTIVE_GRACE_MS, StalenessPolicy

__all__ = [
    "INTERACTIVE_GRACE_MS",
    "SimilarityEngine",
    "SimilarityResult",
    "StalenessPolicy",
    "UpdateReason",
]
