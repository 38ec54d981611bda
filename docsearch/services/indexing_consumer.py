"""Indexing consumer: applies indexing jobs to the embedding store.

Every job kind has exactly one handler, registered in a table keyed by
job type.  The table is checked against :data:`JOB_TYPES` when the
consumer is built, so a new job kind without a handler fails at startup
instead of at dispatch time.

Job semantics
-------------
- ``WorkspaceCreateJob``  -- reindex every live document in the workspace.
- ``WorkspaceDeleteJob``  -- delete every chunk of the workspace.
- ``DocumentReindexJob``  -- re-chunk and re-embed each document, then
  replace its chunks in one transaction.  Missing or soft-deleted
  documents, and documents whose text is empty, end up with no chunks.
- ``DocumentRemoveJob``   -- delete the chunks of each document.

All handlers are idempotent: the queue delivers at least once.

Concurrent reindexes of one document
------------------------------------
Two reindex jobs for the same document can embed different versions of
its text and commit in either order; the later commit wins even if it
carries the older text.  Inside one process this is prevented by a
per-document lock held from the document read to the commit.  Across
processes there is no lock: the next content-updated event repairs the
index.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import structlog
from pydantic import ValidationError

from docsearch.config.settings import Settings
from docsearch.interfaces.document_provider import IDocumentProvider
from docsearch.interfaces.embedding_provider import IEmbeddingProvider
from docsearch.interfaces.embedding_store import IEmbeddingStore
from docsearch.models.document import Document
from docsearch.models.embedding import NewChunk
from docsearch.models.jobs import (
    JOB_TYPES,
    DocumentReindexJob,
    DocumentRemoveJob,
    IndexingJob,
    WorkspaceCreateJob,
    WorkspaceDeleteJob,
)
from docsearch.services.chunker import TextChunker, chunk_offsets, content_hash
from docsearch.utils.concurrency import KeyedLocks
from docsearch.utils.errors import (
    ConfigurationError,
    JobDispatchError,
    SchemaMissingError,
)
from docsearch.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

_FATAL_ERRORS = (ConfigurationError, SchemaMissingError, JobDispatchError, ValidationError)


def is_retryable(exc: BaseException) -> bool:
    """Return ``False`` for errors that a retry cannot fix."""
    return not isinstance(exc, _FATAL_ERRORS)


class IndexingConsumer:
    """Keeps the embedding store in sync with the document store.

    Parameters
    ----------
    embedding_provider:
        Produces one vector per chunk.
    store:
        Destination for chunk rows.
    documents:
        Read access to current document text.
    settings:
        Supplies the embedding model, its dimension and the chunk size.
    chunker:
        Chunker to use; defaults to one built from ``settings.chunk_size``.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        store: IEmbeddingStore,
        documents: IDocumentProvider,
        settings: Settings,
        chunker: TextChunker | None = None,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._store = store
        self._documents = documents
        self._settings = settings
        self._chunker = chunker or TextChunker(settings.chunk_size)
        self._locks = KeyedLocks()

        self._handlers: dict[type, Callable[[Any], Awaitable[None]]] = {
            WorkspaceCreateJob: self._handle_workspace_create,
            WorkspaceDeleteJob: self._handle_workspace_delete,
            DocumentReindexJob: self._handle_document_reindex,
            DocumentRemoveJob: self._handle_document_remove,
        }
        unhandled = [t.__name__ for t in JOB_TYPES if t not in self._handlers]
        if unhandled:
            raise JobDispatchError(message=f"No handler for job types: {', '.join(unhandled)}")

    async def process(self, job: IndexingJob) -> None:
        """Run the handler for *job*.

        Raises
        ------
        SchemaMissingError
            If the embedding table does not exist.  Nothing is written.
        JobDispatchError
            If *job* is not one of the known job types.
        """
        handler = self._handlers.get(type(job))
        if handler is None:
            raise JobDispatchError(message=f"No handler for job type {type(job).__name__}")

        if not await self._store.table_exists():
            raise SchemaMissingError(
                message="Embedding table does not exist; run the schema migration first",
                provider_name=self._store.get_provider_name(),
            )

        await handler(job)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _handle_workspace_create(self, job: WorkspaceCreateJob) -> None:
        document_ids = await self._documents.list_document_ids(job.workspace_id)
        logger.info(
            "workspace_index_started",
            workspace_id=job.workspace_id,
            documents=len(document_ids),
        )
        chunks = await self.reindex_documents(document_ids, job.workspace_id)
        logger.info(
            "workspace_index_finished",
            workspace_id=job.workspace_id,
            documents=len(document_ids),
            chunks=chunks,
        )

    async def _handle_workspace_delete(self, job: WorkspaceDeleteJob) -> None:
        await self._store.delete_workspace_chunks(job.workspace_id)

    async def _handle_document_reindex(self, job: DocumentReindexJob) -> None:
        await self.reindex_documents(job.document_ids, job.workspace_id)

    async def _handle_document_remove(self, job: DocumentRemoveJob) -> None:
        for document_id in job.document_ids:
            async with self._locks.hold(self._lock_key(job.workspace_id, document_id)):
                await self._store.delete_document_chunks([document_id], job.workspace_id)

    # ------------------------------------------------------------------
    # Reindexing
    # ------------------------------------------------------------------

    async def reindex_documents(self, document_ids: Sequence[str], workspace_id: str) -> int:
        """Rebuild chunks for each document in order.  Returns chunks written."""
        self._require_embedding_config()
        written = 0
        for document_id in document_ids:
            async with self._locks.hold(self._lock_key(workspace_id, document_id)):
                written += await self._reindex_one(document_id, workspace_id)
        return written

    async def _reindex_one(self, document_id: str, workspace_id: str) -> int:
        found = await self._documents.get_documents([document_id], workspace_id)
        document = found[0] if found else None

        if document is None or document.is_deleted:
            logger.info(
                "document_not_indexable",
                document_id=document_id,
                workspace_id=workspace_id,
                reason="missing" if document is None else "deleted",
            )
            await self._store.delete_document_chunks([document_id], workspace_id)
            return 0

        chunks = await self._embed_document(document)
        await self._store.replace_document_chunks(
            document_id=document.id,
            workspace_id=workspace_id,
            space_id=document.space_id,
            chunks=chunks,
        )
        logger.info(
            "document_indexed",
            document_id=document.id,
            workspace_id=workspace_id,
            chunks=len(chunks),
        )
        return len(chunks)

    async def _embed_document(self, document: Document) -> list[NewChunk]:
        model = self._settings.ai_embedding_model
        dimension = self._settings.ai_embedding_dimension
        texts = self._chunker.chunk(document.text_content)
        offsets = chunk_offsets(texts)

        chunks: list[NewChunk] = []
        for index, (text, start) in enumerate(zip(texts, offsets)):
            vector = await self._embedding_provider.embed(text, model)
            if len(vector) != dimension:
                raise ConfigurationError(
                    message=(
                        f"Embedding model {model} returned {len(vector)} dimensions, "
                        f"AI_EMBEDDING_DIMENSION is {dimension}"
                    ),
                    provider_name=self._embedding_provider.get_provider_name(),
                )
            chunks.append(
                NewChunk(
                    chunk_index=index,
                    chunk_start=start,
                    chunk_length=len(text),
                    text=text,
                    content_hash=content_hash(text),
                    embedding=vector,
                    model_name=model,
                    model_dimensions=dimension,
                    metadata={
                        "document_id": document.id,
                        "space_id": document.space_id,
                        "slug_id": document.slug_id,
                        "title": document.title,
                        "chunk_index": index,
                    },
                )
            )
        return chunks

    def _require_embedding_config(self) -> None:
        if self._settings.is_embedding_configured():
            return
        missing = "AI_EMBEDDING_MODEL" if not self._settings.ai_embedding_model else "AI_EMBEDDING_DIMENSION"
        raise ConfigurationError(message=f"{missing} is not configured")

    @staticmethod
    def _lock_key(workspace_id: str, document_id: str) -> str:
        return f"{workspace_id}:{document_id}"
