"""Refresh data models."""

from pydantic import BaseModel, Field

from embedding_search.documents.models import NoteFile
from embedding_search.retrieval.models import UpdateReason


class UpdateTarget(BaseModel):
    """A note queued for (re-)embedding and why."""

    note: NoteFile = Field(description="Note to embed")
    reason: UpdateReason = Field(description="Why the note is queued")


class RefreshReport(BaseModel):
    """Outcome of a bulk refresh.

    Attributes:
        total: Notes found in the vault.
        queued: Notes that needed embedding.
        added: Notes embedded for the first time.
        updated: Notes whose existing entry was replaced.
        skipped_empty: Queued notes skipped because they were empty.
        batches: Batches committed to the cache file.
    """

    total: int = Field(default=0, description="Notes found")
    queued: int = Field(default=0, description="Notes needing embedding")
    added: int = Field(default=0, description="New cache entries")
    updated: int = Field(default=0, description="Replaced cache entries")
    skipped_empty: int = Field(default=0, description="Empty notes skipped")
    batches: int = Field(default=0, description="Batches saved")

    @property
    def up_to_date(self) -> bool:
        """True when nothing needed embedding."""
        return self.queued == 0

    def summary(self) -> str:
        """One-line human-readable summary."""
        if self.up_to_date:
            return "All notes are up to date."
        return f"Embedding update complete. Added: {self.added}. Updated: {self.updated}."
