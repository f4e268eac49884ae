"""Embedding cache module."""

from embedding_search.vectorstore.models import (
    CacheEntry,
    EmbeddingCache,
    LegacyEntry,
    StructuredEntry,
    vector_of,
)
from embedding_search.vectorstore.service import EmbeddingStore
from embedding_search.vectorstore.vectormath import cosine_similarity

__all__ = [
    "CacheEntry",
    "EmbeddingCache",
    "EmbeddingStore",
    "LegacyEntry",
    "StructuredEntry",
    "cosine_similarity",
    "vector_of",
]
