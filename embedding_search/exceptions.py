"""Application exception hierarchy.

All custom exceptions inherit from EmbeddingSearchError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "ES-1000"
    CONFIGURATION_ERROR = "ES-1001"
    VALIDATION_ERROR = "ES-1002"

    # Document errors (2xxx)
    NOTE_NOT_FOUND = "ES-2000"
    NOTE_EMPTY = "ES-2001"
    NOTE_READ_ERROR = "ES-2002"

    # Embedding provider errors (3xxx)
    PROVIDER_AUTH_MISSING = "ES-3000"
    PROVIDER_HTTP_ERROR = "ES-3001"
    PROVIDER_BAD_RESPONSE = "ES-3002"
    PROVIDER_UNREACHABLE = "ES-3003"

    # Cache errors (4xxx)
    CACHE_CORRUPT = "ES-4000"
    CACHE_WRITE_ERROR = "ES-4001"

    # Refresh errors (5xxx)
    BATCH_LENGTH_MISMATCH = "ES-5000"


class EmbeddingSearchError(Exception):
    """Base exception for all embedding search errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(EmbeddingSearchError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(EmbeddingSearchError):
    """Input validation error, e.g. a missing required field."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class NotFoundError(EmbeddingSearchError):
    """Requested note does not exist."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.NOTE_NOT_FOUND, details)


class EmptyDocumentError(EmbeddingSearchError):
    """Note has no content to embed."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.NOTE_EMPTY, details)


class DocumentReadError(EmbeddingSearchError):
    """Note exists but could not be read."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.NOTE_READ_ERROR, details)


class AuthError(EmbeddingSearchError):
    """Embedding API credential is missing."""

    def __init__(
        self,
        message: str = "API key is missing. Set EMBEDDING_API_KEY.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.PROVIDER_AUTH_MISSING, details)


class ProviderError(EmbeddingSearchError):
    """Embedding provider returned an error or a malformed response.

    Attributes:
        status_code: HTTP status of the failed response, if any.
        body: Raw response body, if any.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.PROVIDER_HTTP_ERROR,
        status_code: int | None = None,
        body: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        merged = dict(details or {})
        if status_code is not None:
            merged["status_code"] = status_code
        if body is not None:
            merged["body"] = body
        super().__init__(message, code, merged)


class CorruptCacheError(EmbeddingSearchError):
    """Persisted embedding cache is unreadable or malformed."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CACHE_CORRUPT, details)


class CacheWriteError(EmbeddingSearchError):
    """Embedding cache could not be written."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CACHE_WRITE_ERROR, details)


class BatchIntegrityError(EmbeddingSearchError):
    """Provider returned a different number of vectors than inputs sent."""

    def __init__(
        self,
        message: str = "Embedding batch length mismatch.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.BATCH_LENGTH_MISMATCH, details)
