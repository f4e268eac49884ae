"""Embedding service interface and HTTP implementation."""

import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from embedding_search.config import EmbeddingSettings, get_settings
from embedding_search.embeddings.models import EmbeddingRequest
from embedding_search.exceptions import AuthError, ErrorCode, ProviderError
from embedding_search.logging_config import get_logger
from embedding_search.observability.metrics import track_embedding_request

logger = get_logger(__name__)


class EmbeddingService(ABC):
    """Abstract base class for embedding providers.

    Outputs are aligned with inputs; a ``None`` slot means the input was
    empty and nothing was sent for it.
    """

    @abstractmethod
    async def embed_one(self, text: str) -> list[float] | None:
        """Generate an embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            The vector, or None if the text is empty after truncation.

        Raises:
            AuthError: If no API key is configured.
            ProviderError: If the provider request fails.
        """
        ...

    @abstractmethod
    async def embed_many(self, texts: list[str]) -> list[list[float] | None]:
        """Generate embeddings for several texts in one request.

        Args:
            texts: Texts to embed.

        Returns:
            One vector or None per input, in input order.

        Raises:
            AuthError: If no API key is configured.
            ProviderError: If the provider request fails or the response
                does not match the inputs sent.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...


class HTTPEmbeddingService(EmbeddingService):
    """Embedding service for OpenAI-compatible ``/embeddings`` APIs."""

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding service.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    @property
    def url(self) -> str:
        """Embeddings endpoint."""
        return f"{self._settings.base_url.rstrip('/')}/embeddings"

    def _api_key(self) -> str:
        key = self._settings.api_key.get_secret_value().strip()
        if not key:
            raise AuthError()
        return key

    def _truncate(self, text: str) -> str | None:
        """Cut text to the input limit; None if nothing meaningful is left."""
        trimmed = text[: self._settings.max_input_chars]
        if not trimmed.strip():
            return None
        return trimmed

    async def embed_one(self, text: str) -> list[float] | None:
        """Embed a single text."""
        api_key = self._api_key()
        prepared = self._truncate(text)
        if prepared is None:
            return None

        items = await self._post(api_key, prepared, expected=1)
        embedding = items[0].get("embedding") if isinstance(items[0], dict) else None
        if not isinstance(embedding, list):
            raise ProviderError(
                "Embedding response missing embedding data.",
                code=ErrorCode.PROVIDER_BAD_RESPONSE,
            )
        return embedding

    async def embed_many(self, texts: list[str]) -> list[list[float] | None]:
        """Embed a batch of texts with a single request."""
        api_key = self._api_key()
        if not texts:
            return []

        outputs: list[list[float] | None] = [None] * len(texts)
        inputs: list[str] = []
        positions: list[int] = []
        for index, text in enumerate(texts):
            prepared = self._truncate(text)
            if prepared is not None:
                inputs.append(prepared)
                positions.append(index)

        if not inputs:
            return outputs

        items = await self._post(api_key, inputs, expected=len(inputs))
        for item, index in zip(items, positions, strict=True):
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if isinstance(embedding, list):
                outputs[index] = embedding

        return outputs

    async def _post(
        self,
        api_key: str,
        inputs: str | list[str],
        expected: int,
    ) -> list[Any]:
        """Send an embedding request and return the ``data`` list.

        Args:
            api_key: Bearer token.
            inputs: Single text or batch.
            expected: Number of result items the response must contain.

        Returns:
            The raw result items.

        Raises:
            ProviderError: On transport failure, non-success status, or a
                malformed response.
        """
        client = await self._get_client()
        request = EmbeddingRequest(
            input=inputs,
            model=self._settings.model,
            dimensions=self._settings.dimensions,
        )
        start = time.perf_counter()
        success = False

        try:
            try:
                response = await client.post(
                    self.url,
                    json=request.model_dump(),
                    headers={"Authorization": f"Bearer {api_key}"},
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                body = e.response.text
                logger.error(
                    f"Embedding request failed: {status_code}",
                    extra={"url": self.url, "status": status_code},
                )
                raise ProviderError(
                    f"Embedding request failed: {status_code} {body}",
                    code=ErrorCode.PROVIDER_HTTP_ERROR,
                    status_code=status_code,
                    body=body,
                ) from e
            except httpx.RequestError as e:
                logger.error(f"Embedding request error: {e}", extra={"url": self.url})
                raise ProviderError(
                    f"Failed to connect to embedding service: {e}",
                    code=ErrorCode.PROVIDER_UNREACHABLE,
                    details={"url": self.url},
                ) from e

            try:
                payload = response.json()
            except ValueError as e:
                raise ProviderError(
                    "Embedding response is not valid JSON.",
                    code=ErrorCode.PROVIDER_BAD_RESPONSE,
                    status_code=response.status_code,
                    body=response.text,
                ) from e

            items = payload.get("data") if isinstance(payload, dict) else None
            if not isinstance(items, list):
                raise ProviderError(
                    "Embedding response missing data list.",
                    code=ErrorCode.PROVIDER_BAD_RESPONSE,
                    status_code=response.status_code,
                )
            if len(items) != expected:
                raise ProviderError(
                    "Embedding response length mismatch.",
                    code=ErrorCode.PROVIDER_BAD_RESPONSE,
                    status_code=response.status_code,
                    details={"expected": expected, "received": len(items)},
                )

            success = True
            return items
        finally:
            track_embedding_request(
                model=self._settings.model,
                duration=time.perf_counter() - start,
                batch_size=request.batch_size,
                success=success,
            )
