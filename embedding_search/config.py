"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class EmbeddingSettings(BaseSettings):
    """Embedding provider configuration.

    Targets any OpenAI-compatible ``/embeddings`` endpoint.
    """

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token for the embedding API",
    )
    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Embedding API base URL",
    )
    model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    dimensions: int = Field(
        default=256,
        ge=1,
        description="Requested embedding dimensions",
    )
    max_input_chars: int = Field(
        default=1024,
        ge=1,
        description="Maximum characters sent per input",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
    )


class SearchSettings(BaseSettings):
    """Similarity search and refresh configuration."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    similarity_limit: int = Field(
        default=12,
        ge=1,
        description="Default number of similar notes returned",
    )
    batch_size: int = Field(
        default=32,
        ge=1,
        description="Number of notes per embedding batch",
    )
    auto_update_on_startup: bool = Field(
        default=False,
        description="Run one full embedding refresh when the server starts",
    )
    ignore_substrings: list[str] = Field(
        default_factory=lambda: ["nova_letter"],
        description="Path segments containing any of these are never embedded",
    )
    preview_chars: int = Field(
        default=1000,
        ge=1,
        description="Characters of content returned for a truncated result",
    )
    truncate_threshold: int = Field(
        default=3000,
        ge=1,
        description="Content length at which results are truncated",
    )


class MCPSettings(BaseSettings):
    """JSON-RPC query server configuration."""

    model_config = SettingsConfigDict(env_prefix="MCP_")

    enabled: bool = Field(
        default=True,
        description="Expose semantic search tools over JSON-RPC",
    )
    host: str = Field(
        default="127.0.0.1",
        description="Server bind address",
    )
    port: int = Field(
        default=7345,
        description="Server port",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Vault settings
    vault_root: Path = Field(
        default=Path("."),
        description="Root directory of the note collection",
    )
    cache_file: str = Field(
        default="embeddings.json",
        description="Embedding cache file, relative to the vault root",
    )

    # Nested settings
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    mcp: MCPSettings = Field(default_factory=MCPSettings)

    @property
    def cache_path(self) -> Path:
        """Absolute location of the embedding cache file."""
        return self.vault_root / self.cache_file


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
