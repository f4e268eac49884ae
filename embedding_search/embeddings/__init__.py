"""Embedding provider module."""

from embedding_search.embeddings.models import EmbeddingRequest
from embedding_search.embeddings.service import EmbeddingService, HTTPEmbeddingService

__all__ = [
    "EmbeddingRequest",
    "EmbeddingService",
    "HTTPEmbeddingService",
]
