"""Integration tests for the HTTP API using TestClient.

The app is assembled by hand with fake AI providers and real SQLite
storage seeded through the indexing consumer.
"""

from __future__ import annotations

import asyncio
import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from docsearch.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from docsearch.api.routes import router as api_router
from docsearch.config.settings import Settings
from docsearch.pipeline.indexing_worker import IndexingWorker
from docsearch.providers.documents.sqlite_document_provider import SQLiteDocumentProvider
from docsearch.providers.queue.memory_job_queue import MemoryJobQueue
from docsearch.providers.vector_store.sqlite_embedding_store import SQLiteEmbeddingStore
from docsearch.services.answer_service import AnswerService
from docsearch.services.indexing_consumer import IndexingConsumer
from docsearch.services.retriever import Retriever
from docsearch.services.status_service import StatusService
from tests.conftest import FakeCompletionProvider, FakeEmbeddingProvider, make_settings

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _seed(settings: Settings) -> None:
    documents = SQLiteDocumentProvider(settings.database_path)
    await documents.initialize()
    store = SQLiteEmbeddingStore(settings.database_path)
    await store.initialize()

    await documents.upsert_space("sp1", "ws1", slug="engineering")
    await documents.upsert_document(
        "doc-deploy",
        "ws1",
        "Run the script to deploy the service.",
        title="Deploying",
        space_id="sp1",
        slug_id="deploy-abc",
    )
    await documents.upsert_document("doc-billing", "ws1", "Billing runs nightly.", title="Billing")

    consumer = IndexingConsumer(FakeEmbeddingProvider(), store, documents, settings)
    await consumer.reindex_documents(["doc-deploy", "doc-billing"], "ws1")


def _create_test_app(
    settings: Settings,
    completion_provider: FakeCompletionProvider | None = None,
) -> FastAPI:
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router)

    embedding_provider = FakeEmbeddingProvider()
    completion_provider = completion_provider or FakeCompletionProvider(deltas=["Use the ", "deploy script."])
    documents = SQLiteDocumentProvider(settings.database_path)
    store = SQLiteEmbeddingStore(settings.database_path)
    queue = MemoryJobQueue()
    consumer = IndexingConsumer(embedding_provider, store, documents, settings)
    retriever = Retriever(embedding_provider, store, settings)

    app.state.settings = settings
    app.state.embedding_provider = embedding_provider
    app.state.completion_provider = completion_provider
    app.state.document_provider = documents
    app.state.embedding_store = store
    app.state.job_queue = queue
    app.state.indexing_consumer = consumer
    app.state.retriever = retriever
    app.state.answer_service = AnswerService(completion_provider, retriever, settings)
    app.state.status_service = StatusService(store, documents, queue, settings)
    app.state.indexing_worker = IndexingWorker(queue, consumer)
    return app


def _frames(body: str) -> list[str]:
    return [frame for frame in body.split("\n\n") if frame]


def _payload(frame: str):
    assert frame.startswith("data: ")
    return json.loads(frame[len("data: "):])


@pytest.fixture
def seeded_settings(tmp_path) -> Settings:
    settings = make_settings(tmp_path, chunk_size=1500)
    asyncio.run(_seed(settings))
    return settings


@pytest.fixture
def client(seeded_settings: Settings) -> TestClient:
    return TestClient(_create_test_app(seeded_settings))


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_healthy_with_schema(self, client: TestClient) -> None:
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["providers"]["embeddings_table"] is True
        assert body["providers"]["worker"] is False

    def test_degraded_without_schema(self, tmp_path) -> None:
        client = TestClient(_create_test_app(make_settings(tmp_path)))

        body = client.get("/api/health").json()

        assert body["status"] == "degraded"


# ---------------------------------------------------------------------------
# Ask
# ---------------------------------------------------------------------------


class TestAsk:
    def test_streams_sources_content_and_done(self, client: TestClient) -> None:
        response = client.post("/api/ai/ask", json={"query": "how do I deploy", "workspaceId": "ws1"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        frames = _frames(response.text)
        sources = _payload(frames[0])
        assert sources["meta"] == {"chunkCount": 2, "documentCount": 2}
        first = sources["sources"][0]
        assert first["documentId"] == "doc-deploy"
        assert first["link"] == "/page/deploy-abc"
        assert first["spaceSlug"] == "engineering"
        assert first["excerpt"] == "Run the script to deploy the service."
        assert first["similarity"] == pytest.approx(1.0)
        assert sources["sources"][1]["link"] == "/page/doc-billing"

        assert [_payload(f)["content"] for f in frames[1:3]] == ["Use the ", "deploy script."]
        assert frames[-1] == "data: [DONE]"
        assert len(frames) == 4

    def test_workspace_from_header(self, client: TestClient) -> None:
        response = client.post(
            "/api/ai/ask",
            json={"query": "how do I deploy"},
            headers={"X-Workspace-Id": "ws1"},
        )

        sources = _payload(_frames(response.text)[0])
        assert sources["meta"]["chunkCount"] == 2

    def test_unknown_workspace_has_no_sources(self, client: TestClient) -> None:
        response = client.post("/api/ai/ask", json={"query": "deploy", "workspaceId": "nope"})

        frames = _frames(response.text)
        assert _payload(frames[0]) == {"sources": [], "meta": {"chunkCount": 0, "documentCount": 0}}
        assert frames[-1] == "data: [DONE]"

    def test_provider_failure_ends_with_error_frame(self, seeded_settings: Settings) -> None:
        provider = FakeCompletionProvider(deltas=["partial"], fail_after=1)
        client = TestClient(_create_test_app(seeded_settings, provider))

        response = client.post("/api/ai/ask", json={"query": "deploy", "workspaceId": "ws1"})

        frames = _frames(response.text)
        assert _payload(frames[1]) == {"content": "partial"}
        assert _payload(frames[-1]) == {"error": "AI ask stream failed"}
        assert "data: [DONE]" not in frames
        assert provider.closed is True

    def test_disabled_driver_is_bad_request(self, tmp_path) -> None:
        client = TestClient(_create_test_app(make_settings(tmp_path, ai_driver="")))

        response = client.post("/api/ai/ask", json={"query": "deploy", "workspaceId": "ws1"})

        assert response.status_code == 400
        assert response.json()["error"] == "ConfigurationError"

    def test_missing_credentials_is_bad_request(self, seeded_settings: Settings) -> None:
        client = TestClient(
            _create_test_app(seeded_settings, FakeCompletionProvider(available=False))
        )

        response = client.post("/api/ai/ask", json={"query": "deploy"})

        assert response.status_code == 400
        assert response.json()["error"] == "ProviderConfigError"

    def test_empty_query_rejected(self, client: TestClient) -> None:
        assert client.post("/api/ai/ask", json={"query": ""}).status_code == 422


# ---------------------------------------------------------------------------
# Generate
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_generate_returns_content(self, client: TestClient) -> None:
        response = client.post("/api/ai/generate", json={"action": "summarize", "content": "Long text"})

        assert response.status_code == 200
        assert response.json() == {"content": "rewritten"}

    def test_generate_failure_is_server_error(self, seeded_settings: Settings) -> None:
        client = TestClient(_create_test_app(seeded_settings, FakeCompletionProvider(fail_after=0)))

        response = client.post("/api/ai/generate", json={"content": "text"})

        assert response.status_code == 500
        assert response.json() == {"error": "GenerationError", "detail": "AI generation failed"}

    def test_unknown_action_rejected(self, client: TestClient) -> None:
        response = client.post("/api/ai/generate", json={"action": "rewrite_everything", "content": "x"})
        assert response.status_code == 422

    @pytest.mark.parametrize("body", [{"action": "summarize"}, {"content": ""}])
    def test_content_required(self, client: TestClient, body: dict) -> None:
        assert client.post("/api/ai/generate", json=body).status_code == 422
        assert client.post("/api/ai/generate/stream", json=body).status_code == 422

    def test_generate_stream(self, client: TestClient) -> None:
        response = client.post("/api/ai/generate/stream", json={"content": "text", "prompt": "Shorter"})

        frames = _frames(response.text)
        assert [_payload(f)["content"] for f in frames[:-1]] == ["Use the ", "deploy script."]
        assert frames[-1] == "data: [DONE]"


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


class TestStatus:
    def test_workspace_report(self, client: TestClient) -> None:
        response = client.get("/api/ai/status", params={"workspaceId": "ws1"})

        assert response.status_code == 200
        body = response.json()
        assert body["driver"] == "openai"
        assert body["embeddingsTable"] is True
        assert body["queueCounts"]["waiting"] == 0
        assert body["documentCounts"] == {
            "totalDocuments": 2,
            "documentsWithEmbeddings": 2,
            "documentsWithoutEmbeddings": 0,
        }
        assert body["chunkStats"]["totalChunks"] == 2
        assert len(body["chunkStats"]["recent"]) == 2

    def test_without_workspace_omits_document_stats(self, client: TestClient) -> None:
        body = client.get("/api/ai/status").json()

        assert "documentCounts" not in body
        assert "chunkStats" not in body
        assert body["embeddingsTable"] is True

    def test_missing_schema(self, tmp_path) -> None:
        client = TestClient(_create_test_app(make_settings(tmp_path, ai_driver="")))

        body = client.get("/api/ai/status", headers={"X-Workspace-Id": "ws1"}).json()

        assert body == {
            "embeddingsTable": False,
            "queueCounts": {"waiting": 0, "active": 0, "completed": 0, "failed": 0, "delayed": 0},
        }


# ---------------------------------------------------------------------------
# Indexing triggers
# ---------------------------------------------------------------------------


class TestIndexTriggers:
    def test_document_event_enqueues_reindex(self, seeded_settings: Settings) -> None:
        app = _create_test_app(seeded_settings)
        client = TestClient(app)

        response = client.post(
            "/api/ai/index/events",
            json={"event": "content_updated", "documentIds": ["doc-deploy"], "workspaceId": "ws1"},
        )

        assert response.status_code == 202
        body = response.json()
        assert body["kind"] == "document_reindex"
        assert body["jobId"]
        counts = asyncio.run(app.state.job_queue.get_job_counts())
        assert counts["waiting"] == 1

    @pytest.mark.parametrize("event", ["created", "content_updated", "moved_to_space", "restored"])
    def test_every_upsert_event_is_accepted(self, seeded_settings: Settings, event: str) -> None:
        app = _create_test_app(seeded_settings)
        client = TestClient(app)

        response = client.post(
            "/api/ai/index/events",
            json={"event": event, "documentIds": ["doc-deploy"], "workspaceId": "ws1"},
        )

        assert response.status_code == 202
        assert response.json()["kind"] == "document_reindex"
        assert asyncio.run(app.state.job_queue.get_job_counts())["waiting"] == 1

    def test_delete_event_enqueues_remove(self, client: TestClient) -> None:
        response = client.post(
            "/api/ai/index/events",
            json={"event": "soft_deleted", "documentIds": ["doc-deploy"]},
            headers={"X-Workspace-Id": "ws1"},
        )

        assert response.status_code == 202
        assert response.json()["kind"] == "document_remove"

    def test_event_without_workspace_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/ai/index/events",
            json={"event": "created", "documentIds": ["doc-deploy"]},
        )
        assert response.status_code == 400

    def test_event_without_documents_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/ai/index/events",
            json={"event": "created", "documentIds": [], "workspaceId": "ws1"},
        )
        assert response.status_code == 422

    def test_enable_and_disable_workspace(self, client: TestClient) -> None:
        enabled = client.post("/api/ai/index/workspaces/ws1")
        disabled = client.delete("/api/ai/index/workspaces/ws1")

        assert enabled.status_code == 202
        assert enabled.json()["kind"] == "workspace_create"
        assert disabled.status_code == 202
        assert disabled.json()["kind"] == "workspace_delete"
