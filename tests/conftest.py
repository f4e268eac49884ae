"""Pytest configuration and shared fixtures."""

import os
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from embedding_search.api.app import create_app
from embedding_search.config import EmbeddingSettings, SearchSettings, Settings
from embedding_search.documents.vault import FileSystemVault
from embedding_search.services import Services, build_services
from embedding_search.vectorstore.service import EmbeddingStore
from tests.fakes import FakeEmbedder


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    """Empty vault directory."""
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def write_note(vault_root: Path) -> Callable[..., Path]:
    """Write a note into the vault, optionally pinning its mtime (epoch ms)."""

    def _write(path: str, content: str, mtime_ms: int | None = None) -> Path:
        file_path = vault_root / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        if mtime_ms is not None:
            ns = mtime_ms * 1_000_000
            os.utime(file_path, ns=(ns, ns))
        return file_path

    return _write


@pytest.fixture
def settings(vault_root: Path) -> Settings:
    """Settings pointing at the temporary vault."""
    return Settings(
        vault_root=vault_root,
        embedding=EmbeddingSettings(api_key="test-key"),
        search=SearchSettings(batch_size=2),
    )


@pytest.fixture
def vault(vault_root: Path) -> FileSystemVault:
    """Filesystem vault over the temporary directory."""
    return FileSystemVault(vault_root)


@pytest.fixture
def store(settings: Settings, vault: FileSystemVault) -> EmbeddingStore:
    """Embedding cache stored inside the temporary vault."""
    return EmbeddingStore(settings.cache_path, vault)


@pytest.fixture
def embedder() -> FakeEmbedder:
    """Keyword-driven fake embedder."""
    return FakeEmbedder(
        vectors={
            "alpha": [1.0, 0.0, 0.0],
            "beta": [0.0, 1.0, 0.0],
            "gamma": [0.7, 0.7, 0.0],
        },
        default=[0.0, 0.0, 1.0],
    )


@pytest.fixture
def services(settings: Settings, vault: FileSystemVault, embedder: FakeEmbedder) -> Services:
    """Service graph wired with the fake embedder."""
    return build_services(settings, documents=vault, embedder=embedder)


@pytest.fixture
async def client(services: Services) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for the FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    app = create_app(services=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
