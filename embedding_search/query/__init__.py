"""Search operations module."""

from embedding_search.query.connections import ConnectionsView
from embedding_search.query.models import (
    ConnectionsSnapshot,
    NoteContent,
    NoteSearchResponse,
    SearchHit,
    TextSearchResponse,
)
from embedding_search.query.service import QueryService

__all__ = [
    "ConnectionsSnapshot",
    "ConnectionsView",
    "NoteContent",
    "NoteSearchResponse",
    "QueryService",
    "SearchHit",
    "TextSearchResponse",
]
