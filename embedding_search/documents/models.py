"""Document data models and path rules."""

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import PurePosixPath

from pydantic import BaseModel, Field

NOTE_EXTENSION = ".md"


class NoteFile(BaseModel):
    """A note in the vault.

    Attributes:
        path: Vault-relative POSIX path, the note's identity.
        mtime_ms: Last modification time in epoch milliseconds.
        size: File size in bytes.
    """

    path: str = Field(description="Vault-relative path")
    mtime_ms: int = Field(description="Modification time (epoch ms)")
    size: int = Field(default=0, description="File size in bytes")

    @property
    def basename(self) -> str:
        """File name including extension."""
        return PurePosixPath(self.path).name

    @property
    def display_name(self) -> str:
        """File name with the note extension stripped."""
        return display_name_for_path(self.path)

    @property
    def modified_iso(self) -> str:
        """Modification time as an ISO-8601 UTC string."""
        return format_timestamp(self.mtime_ms)


def is_note_path(path: str) -> bool:
    """Check whether a path is eligible for embedding."""
    return path.endswith(NOTE_EXTENSION)


def display_name_for_path(path: str) -> str:
    """Base name of a path without the note extension."""
    filename = path.split("/")[-1] or path
    if filename.endswith(NOTE_EXTENSION):
        return filename[: -len(NOTE_EXTENSION)]
    return filename


def should_ignore_path(path: str, ignore_substrings: Iterable[str] = ()) -> bool:
    """Check whether a note is excluded from bulk refresh.

    A path is ignored when any segment is hidden (``.``), starts with ``@``,
    or contains one of the configured substrings.
    """
    substrings = [s for s in ignore_substrings if s]
    for part in path.split("/"):
        if part.startswith(".") or part.startswith("@"):
            return True
        if any(s in part for s in substrings):
            return True
    return False


def format_timestamp(mtime_ms: int | float) -> str:
    """Render epoch milliseconds as ``YYYY-MM-DDTHH:MM:SS.sssZ``."""
    moment = datetime.fromtimestamp(mtime_ms / 1000, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> int | None:
    """Parse an ISO-8601 timestamp into epoch milliseconds.

    Naive timestamps are read as UTC. Returns None when unparseable.
    """
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return round(moment.timestamp() * 1000)
