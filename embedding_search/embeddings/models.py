"""Embedding request models."""

from pydantic import BaseModel, Field


class EmbeddingRequest(BaseModel):
    """Body of a ``POST /embeddings`` call.

    Attributes:
        input: A single text or a batch of texts.
        model: Model to embed with.
        dimensions: Requested vector length.
    """

    input: str | list[str] = Field(description="Text or texts to embed")
    model: str = Field(description="Embedding model name")
    dimensions: int = Field(description="Requested vector dimensions")

    @property
    def batch_size(self) -> int:
        """Number of inputs carried by the request."""
        return len(self.input) if isinstance(self.input, list) else 1
