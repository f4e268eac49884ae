"""Retrieval data models."""

from enum import Enum

from pydantic import BaseModel, Field


class UpdateReason(str, Enum):
    """Why a note's cached embedding needs refreshing."""

    NEW = "new"
    OLD_FORMAT = "old-format"
    MISSING_DATA = "missing-data"
    INVALID_TIMESTAMP = "invalid-timestamp"
    MODIFIED = "modified"


class SimilarityResult(BaseModel):
    """A ranked note.

    Attributes:
        path: Note path.
        display_name: Note file name without extension.
        score: Raw cosine similarity, used for ranking.
    """

    path: str = Field(description="Note path")
    display_name: str = Field(description="Note name for display")
    score: float = Field(description="Cosine similarity")

    @property
    def display_score(self) -> float:
        """Score clamped to [0, 1] for rendering."""
        return max(0.0, min(1.0, self.score))
