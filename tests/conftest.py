"""Shared pytest fixtures for the docsearch test suite."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from docsearch.config.settings import Settings
from docsearch.interfaces.completion_provider import ChatMessage, ICompletionProvider
from docsearch.interfaces.embedding_provider import IEmbeddingProvider
from docsearch.providers.documents.sqlite_document_provider import SQLiteDocumentProvider
from docsearch.providers.vector_store.sqlite_embedding_store import SQLiteEmbeddingStore
from docsearch.utils.errors import ProviderCallError

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

EMBEDDING_DIM = 3


def make_settings(tmp_path: Path, **overrides) -> Settings:
    """Build a fully configured Settings instance pointing at *tmp_path*."""
    defaults = {
        "ai_driver": "openai",
        "openai_api_key": "sk-test",
        "openai_api_url": "https://api.test/v1",
        "ai_completion_model": "test-chat",
        "ai_embedding_model": "test-embed",
        "ai_embedding_dimension": EMBEDDING_DIM,
        "database_path": str(tmp_path / "docsearch.db"),
        "chunk_size": 40,
        "retrieval_top_k": 4,
        "queue_backoff_seconds": 0.0,
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------

# Topic words map to one axis each; the third axis keeps vectors non-zero.
_TOPIC_AXES = ("deploy", "billing")


def keyword_vector(text: str) -> list[float]:
    lowered = text.lower()
    return [float(lowered.count(word)) for word in _TOPIC_AXES] + [1.0]


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic embeddings keyed on topic words."""

    def __init__(self, dimension: int = EMBEDDING_DIM, fail_on: str | None = None) -> None:
        self.dimension = dimension
        self.fail_on = fail_on
        self.calls: list[tuple[str, str]] = []

    async def embed(self, text: str, model: str) -> list[float]:
        self.calls.append((text, model))
        if self.fail_on is not None and self.fail_on in text:
            raise ProviderCallError(message="embedding refused", provider_name="fake_embedding")
        vector = keyword_vector(text)
        if self.dimension != len(vector):
            vector = (vector + [0.0] * self.dimension)[: self.dimension]
        return vector

    def get_provider_name(self) -> str:
        return "fake_embedding"

    def is_available(self) -> bool:
        return True


class FakeCompletionProvider(ICompletionProvider):
    """Scripted completion provider.

    ``deltas`` are streamed in order.  ``fail_after`` raises a
    ``ProviderCallError`` once that many deltas have been yielded.
    """

    def __init__(
        self,
        deltas: list[str] | None = None,
        completion: str = "rewritten",
        fail_after: int | None = None,
        available: bool = True,
    ) -> None:
        self.deltas = deltas if deltas is not None else ["Hello", " world"]
        self.completion = completion
        self.fail_after = fail_after
        self.available = available
        self.closed = False
        self.stream_calls: list[list[ChatMessage]] = []
        self.complete_calls: list[list[ChatMessage]] = []

    async def complete(self, model: str, messages: list[ChatMessage]) -> str:
        self.complete_calls.append(messages)
        if self.fail_after is not None:
            raise ProviderCallError(message="upstream 500", provider_name="fake_completion")
        return self.completion

    async def stream(self, model: str, messages: list[ChatMessage]) -> AsyncGenerator[str, None]:
        self.stream_calls.append(messages)
        try:
            for position, delta in enumerate(self.deltas):
                if self.fail_after is not None and position >= self.fail_after:
                    raise ProviderCallError(message="stream broke", provider_name="fake_completion")
                yield delta
            if self.fail_after is not None and self.fail_after >= len(self.deltas):
                raise ProviderCallError(message="stream broke", provider_name="fake_completion")
        finally:
            self.closed = True

    def get_provider_name(self) -> str:
        return "fake_completion"

    def is_available(self) -> bool:
        return self.available


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def completion_provider() -> FakeCompletionProvider:
    return FakeCompletionProvider()


# ---------------------------------------------------------------------------
# SQLite fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def document_provider(settings: Settings) -> SQLiteDocumentProvider:
    provider = SQLiteDocumentProvider(db_path=settings.database_path)
    await provider.initialize()
    return provider


@pytest.fixture
async def embedding_store(
    settings: Settings,
    document_provider: SQLiteDocumentProvider,
) -> SQLiteEmbeddingStore:
    store = SQLiteEmbeddingStore(db_path=settings.database_path)
    await store.initialize()
    return store


@pytest.fixture
async def seeded_documents(document_provider: SQLiteDocumentProvider) -> SQLiteDocumentProvider:
    """Workspace ``ws1`` with two live documents in space ``sp1`` and one deleted."""
    await document_provider.upsert_space("sp1", "ws1", slug="engineering", name="Engineering")
    await document_provider.upsert_space("sp2", "ws1", slug="finance", name="Finance")
    await document_provider.upsert_document(
        "doc-deploy",
        "ws1",
        "How to deploy the service. Run the deploy script and watch the deploy log.",
        title="Deploying",
        space_id="sp1",
        slug_id="deploy-abc",
    )
    await document_provider.upsert_document(
        "doc-billing",
        "ws1",
        "Billing runs nightly. Billing reports land in the finance share.",
        title="Billing",
        space_id="sp2",
        slug_id="billing-xyz",
    )
    await document_provider.upsert_document(
        "doc-old",
        "ws1",
        "An old deploy note that was removed.",
        title="Old",
        space_id="sp1",
    )
    await document_provider.soft_delete_document("doc-old")
    return document_provider
