"""Indexing health report.

Each part of the report is gathered on its own.  A failing queue or
database query is logged and its field left out; it never hides the
parts that did succeed.
"""

from __future__ import annotations

import structlog

from docsearch.config.settings import Settings
from docsearch.interfaces.document_provider import IDocumentProvider
from docsearch.interfaces.embedding_store import IEmbeddingStore
from docsearch.interfaces.job_queue import IJobQueue
from docsearch.models.status import (
    ChunkStats,
    DocumentCounts,
    IndexStatus,
    QueueCounts,
    RecentChunkView,
)
from docsearch.services.retriever import build_link
from docsearch.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


class StatusService:
    """Aggregates driver, schema, queue and coverage information."""

    def __init__(
        self,
        store: IEmbeddingStore,
        documents: IDocumentProvider,
        queue: IJobQueue | None,
        settings: Settings,
    ) -> None:
        self._store = store
        self._documents = documents
        self._queue = queue
        self._settings = settings

    async def status(self, workspace_id: str | None = None) -> IndexStatus:
        table_exists = await self._table_exists()
        queue_counts = await self._queue_counts()

        document_counts = None
        chunk_stats = None
        if table_exists and workspace_id:
            document_counts = await self._document_counts(workspace_id)
            chunk_stats = await self._chunk_stats(workspace_id)

        return IndexStatus(
            driver=self._settings.ai_driver or None,
            embeddings_table=table_exists,
            queue_counts=queue_counts,
            document_counts=document_counts,
            chunk_stats=chunk_stats,
        )

    async def _table_exists(self) -> bool:
        try:
            return await self._store.table_exists()
        except Exception as exc:
            logger.warning("status_table_check_failed", error=str(exc))
            return False

    async def _queue_counts(self) -> QueueCounts | None:
        if self._queue is None:
            return None
        try:
            counts = await self._queue.get_job_counts()
        except Exception as exc:
            logger.warning("status_queue_counts_failed", error=str(exc))
            return None
        return QueueCounts(**counts)

    async def _document_counts(self, workspace_id: str) -> DocumentCounts | None:
        try:
            total = await self._documents.count_documents(workspace_id)
            indexed = await self._store.count_indexed_documents(workspace_id)
        except Exception as exc:
            logger.warning("status_document_counts_failed", workspace_id=workspace_id, error=str(exc))
            return None
        return DocumentCounts(
            total_documents=total,
            documents_with_embeddings=indexed,
            documents_without_embeddings=max(0, total - indexed),
        )

    async def _chunk_stats(self, workspace_id: str) -> ChunkStats | None:
        try:
            total = await self._store.count_chunks(workspace_id)
            recent = await self._store.recent_chunks(
                workspace_id, limit=self._settings.status_recent_chunks
            )
        except Exception as exc:
            logger.warning("status_chunk_stats_failed", workspace_id=workspace_id, error=str(exc))
            return None
        return ChunkStats(
            total_chunks=total,
            recent=[
                RecentChunkView(
                    document_id=r.document_id,
                    chunk_index=r.chunk_index,
                    created_at=r.created_at,
                    title=r.title,
                    slug_id=r.slug_id,
                    space_slug=r.space_slug,
                    link=build_link(self._settings.page_link_prefix, r.slug_id, r.document_id),
                )
                for r in recent
            ],
        )
