"""Note collection module."""

from embedding_search.documents.models import (
    NOTE_EXTENSION,
    NoteFile,
    display_name_for_path,
    format_timestamp,
    is_note_path,
    parse_timestamp,
    should_ignore_path,
)
from embedding_search.documents.vault import DocumentStore, FileSystemVault

__all__ = [
    "NOTE_EXTENSION",
    "DocumentStore",
    "FileSystemVault",
    "NoteFile",
    "display_name_for_path",
    "format_timestamp",
    "is_note_path",
    "parse_timestamp",
    "should_ignore_path",
]
