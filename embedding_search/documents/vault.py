"""Document store interface and filesystem implementation."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path

from embedding_search.documents.models import NOTE_EXTENSION, NoteFile
from embedding_search.exceptions import DocumentReadError, NotFoundError
from embedding_search.logging_config import get_logger

logger = get_logger(__name__)


class DocumentStore(ABC):
    """Abstract base class for note collections.

    Defines the capabilities the embedding cache needs from its host:
    listing notes, reading them, and checking that they still exist.
    """

    @abstractmethod
    async def list_notes(self) -> list[NoteFile]:
        """List every note in the collection.

        Returns:
            Notes ordered by path.
        """
        ...

    @abstractmethod
    async def get(self, path: str) -> NoteFile | None:
        """Look up a note by exact path.

        Args:
            path: Vault-relative path.

        Returns:
            The note, or None if no such file exists.
        """
        ...

    @abstractmethod
    async def read(self, note: NoteFile) -> str:
        """Read the full text of a note.

        Args:
            note: Note to read.

        Returns:
            Note content.

        Raises:
            NotFoundError: If the note has disappeared.
            DocumentReadError: If the note cannot be decoded or read.
        """
        ...


class FileSystemVault(DocumentStore):
    """Note collection backed by a directory of markdown files."""

    def __init__(self, root: str | Path, encoding: str = "utf-8") -> None:
        """Initialize the vault.

        Args:
            root: Vault root directory.
            encoding: Text encoding used when reading notes.
        """
        self.root = Path(root).expanduser().resolve()
        self.encoding = encoding

    def _resolve(self, path: str) -> Path | None:
        """Map a vault-relative path to a file inside the root."""
        candidate = (self.root / path).resolve()
        if not candidate.is_relative_to(self.root):
            return None
        return candidate

    def _to_note(self, file_path: Path) -> NoteFile:
        stat = file_path.stat()
        return NoteFile(
            path=file_path.relative_to(self.root).as_posix(),
            mtime_ms=stat.st_mtime_ns // 1_000_000,
            size=stat.st_size,
        )

    def _scan(self) -> list[NoteFile]:
        if not self.root.is_dir():
            return []
        notes = [
            self._to_note(p)
            for p in self.root.rglob(f"*{NOTE_EXTENSION}")
            if p.is_file()
        ]
        notes.sort(key=lambda n: n.path)
        return notes

    async def list_notes(self) -> list[NoteFile]:
        """List all markdown files below the root."""
        return await asyncio.to_thread(self._scan)

    def _lookup(self, path: str) -> NoteFile | None:
        if not path:
            return None
        resolved = self._resolve(path)
        if resolved is None or not resolved.is_file():
            return None
        return self._to_note(resolved)

    async def get(self, path: str) -> NoteFile | None:
        """Look up a file by vault-relative path."""
        return await asyncio.to_thread(self._lookup, path)

    def _read_text(self, note: NoteFile) -> str:
        resolved = self._resolve(note.path)
        if resolved is None or not resolved.is_file():
            raise NotFoundError(
                f"Note not found: {note.path}",
                details={"path": note.path},
            )
        try:
            return resolved.read_text(encoding=self.encoding)
        except UnicodeDecodeError as e:
            raise DocumentReadError(
                f"Failed to decode note: {note.path}",
                details={"path": note.path, "encoding": self.encoding, "error": str(e)},
            ) from e
        except FileNotFoundError as e:
            raise NotFoundError(
                f"Note not found: {note.path}",
                details={"path": note.path},
            ) from e
        except OSError as e:
            raise DocumentReadError(
                f"Failed to read note: {note.path}",
                details={"path": note.path, "error": str(e)},
            ) from e

    async def read(self, note: NoteFile) -> str:
        """Read a note from disk."""
        return await asyncio.to_thread(self._read_text, note)
