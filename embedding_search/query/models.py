"""Query service response models."""

from pydantic import BaseModel, Field

from embedding_search.retrieval.models import SimilarityResult


class SearchHit(BaseModel):
    """A ranked note with its (possibly truncated) content."""

    path: str = Field(description="Note path")
    score: float = Field(description="Cosine similarity")
    content: str = Field(description="Note content, truncated when large")
    truncated: bool = Field(default=False, description="Whether content was cut")


class TextSearchResponse(BaseModel):
    """Result of a free-text search."""

    query: str = Field(description="Query as searched")
    results: list[SearchHit] = Field(default_factory=list)
    missing_paths: list[str] = Field(
        default_factory=list,
        description="Cached notes that no longer exist and were pruned",
    )


class NoteSearchResponse(BaseModel):
    """Result of a search for notes similar to a given note."""

    note: str = Field(description="Resolved path of the query note")
    results: list[SearchHit] = Field(default_factory=list)
    missing_paths: list[str] = Field(
        default_factory=list,
        description="Cached notes that no longer exist and were pruned",
    )


class NoteContent(BaseModel):
    """Full content of a note."""

    path: str = Field(description="Note path")
    content: str = Field(description="Raw note content")


class ConnectionsSnapshot(BaseModel):
    """One rendering of the connections view for a note.

    Attributes:
        header: Heading line.
        items: Similar notes, best first.
        message: Informational text shown instead of items, if any.
        status: Marker appended to the header, e.g. ``(Updated)``.
    """

    header: str = Field(description="Heading line")
    items: list[SimilarityResult] = Field(default_factory=list)
    message: str | None = Field(default=None, description="Informational text")
    status: str | None = Field(default=None, description="Header status marker")
