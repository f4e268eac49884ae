"""Embedding cache data models.

A cache entry is either a ``StructuredEntry`` (vector plus timestamp) or a
``LegacyEntry`` (a bare vector written by older versions). Read sites match
on the variant explicitly.
"""

from typing import Any, TypeAlias

from pydantic import BaseModel, Field


class StructuredEntry(BaseModel):
    """Current cache entry shape.

    Attributes:
        embedding: The embedding vector, if present.
        last_updated: ISO-8601 modification time of the embedded content.
    """

    embedding: list[float] | None = Field(default=None, description="Embedding vector")
    last_updated: str | None = Field(
        default=None,
        description="Note modification time when embedded",
    )

    def to_json(self) -> dict[str, Any]:
        """Serialize to the on-disk object form."""
        return {"embedding": self.embedding, "last_updated": self.last_updated}


class LegacyEntry(BaseModel):
    """Bare vector stored without a timestamp.

    Usable for ranking as-is; always considered stale.
    """

    embedding: list[float] = Field(description="Embedding vector")

    def to_json(self) -> list[float]:
        """Serialize to the on-disk array form."""
        return list(self.embedding)


CacheEntry: TypeAlias = StructuredEntry | LegacyEntry
EmbeddingCache: TypeAlias = dict[str, CacheEntry]


def vector_of(entry: CacheEntry | None) -> list[float] | None:
    """Return the vector held by an entry of either shape."""
    match entry:
        case LegacyEntry(embedding=embedding):
            return embedding
        case StructuredEntry(embedding=embedding):
            return embedding
        case _:
            return None

