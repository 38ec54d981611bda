"""docsearch FastAPI application entry point.

Wires providers, services and routes together via constructor injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and runs the background indexing worker for the
lifetime of the application.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from docsearch import __version__
from docsearch.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from docsearch.api.routes import router as api_router
from docsearch.config.loader import load_config
from docsearch.config.settings import Settings
from docsearch.pipeline.indexing_worker import IndexingWorker
from docsearch.providers.cache.memory_cache import MemoryCacheProvider
from docsearch.providers.documents.sqlite_document_provider import SQLiteDocumentProvider
from docsearch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from docsearch.providers.llm.openai_completion_provider import OpenAICompletionProvider
from docsearch.providers.queue.memory_job_queue import MemoryJobQueue
from docsearch.providers.vector_store.sqlite_embedding_store import SQLiteEmbeddingStore
from docsearch.services.answer_service import AnswerService
from docsearch.services.chunker import TextChunker
from docsearch.services.indexing_consumer import IndexingConsumer
from docsearch.services.retriever import Retriever
from docsearch.services.status_service import StatusService
from docsearch.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    app_env=settings.app_env,
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``
    (and used directly by the CLI).
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=app_settings.provider_timeout_seconds)
    chunker = TextChunker(app_settings.chunk_size)
    cache = MemoryCacheProvider(ttl=app_settings.query_cache_ttl)

    # -- Providers --
    embedding_provider = OpenAIEmbeddingProvider(settings=app_settings, http_client=http_client)
    completion_provider = OpenAICompletionProvider(settings=app_settings, http_client=http_client)
    document_provider = SQLiteDocumentProvider(db_path=app_settings.database_path)
    embedding_store = SQLiteEmbeddingStore(db_path=app_settings.database_path)
    job_queue = MemoryJobQueue(
        max_attempts=app_settings.queue_max_attempts,
        backoff_seconds=app_settings.queue_backoff_seconds,
    )

    # -- Services --
    indexing_consumer = IndexingConsumer(
        embedding_provider=embedding_provider,
        store=embedding_store,
        documents=document_provider,
        settings=app_settings,
        chunker=chunker,
    )
    retriever = Retriever(
        embedding_provider=embedding_provider,
        store=embedding_store,
        settings=app_settings,
        cache=cache,
        chunker=chunker,
    )
    answer_service = AnswerService(
        completion_provider=completion_provider,
        retriever=retriever,
        settings=app_settings,
        prompts=app_config,
    )
    status_service = StatusService(
        store=embedding_store,
        documents=document_provider,
        queue=job_queue,
        settings=app_settings,
    )
    indexing_worker = IndexingWorker(
        queue=job_queue,
        consumer=indexing_consumer,
        concurrency=app_settings.worker_concurrency,
    )

    return {
        "settings": app_settings,
        "http_client": http_client,
        "embedding_provider": embedding_provider,
        "completion_provider": completion_provider,
        "document_provider": document_provider,
        "embedding_store": embedding_store,
        "job_queue": job_queue,
        "indexing_consumer": indexing_consumer,
        "retriever": retriever,
        "answer_service": answer_service,
        "status_service": status_service,
        "indexing_worker": indexing_worker,
    }


async def initialize_storage(components: dict[str, Any], app_settings: Settings) -> None:
    """Create document tables, and the embedding table when auto-migrating."""
    await components["document_provider"].initialize()
    if app_settings.auto_migrate:
        await components["embedding_store"].initialize()


async def shutdown_components(components: dict[str, Any]) -> None:
    await components["indexing_worker"].stop()
    await components["job_queue"].close()
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await initialize_storage(components, settings)
    components["indexing_worker"].start()

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        ai_driver=settings.ai_driver or None,
        embedding_model=settings.ai_embedding_model or None,
        database=settings.database_path,
    )

    yield

    await shutdown_components(components)
    _logger.info("app_shutdown", message="worker stopped, HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="docsearch API",
        version=__version__,
        description=(
            "Semantic search over a document store: incremental chunk indexing, "
            "retrieval-augmented answers streamed over SSE, and indexing health."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "docsearch.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
