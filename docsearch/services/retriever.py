"""Retriever: turns a query into ranked, citable passages.

    query -> embed (cached) -> nearest_neighbors -> chunk counts -> contexts

The excerpt for each hit is the chunk text persisted at indexing time.
Rows written before chunk text was persisted fall back to re-chunking the
document's current text and picking the stored ``chunk_index``; if the
document has since shrunk, the first ``chunk_size`` characters are used.

Retrieval never fails because indexing is not set up: a missing
embedding model or embedding table yields an empty result.
"""

from __future__ import annotations

import hashlib

import structlog

from docsearch.config.settings import Settings
from docsearch.interfaces.cache_provider import ICacheProvider
from docsearch.interfaces.embedding_provider import IEmbeddingProvider
from docsearch.interfaces.embedding_store import IEmbeddingStore
from docsearch.models.embedding import NeighborRow
from docsearch.models.retrieval import RetrievedContext
from docsearch.services.chunker import TextChunker
from docsearch.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


def similarity_from_distance(distance: float) -> float:
    """Map an L2 distance in ``[0, inf)`` to a score in ``(0, 1]``."""
    return 1.0 / (1.0 + distance)


def build_link(prefix: str, slug_id: str | None, document_id: str) -> str:
    return f"{prefix}{slug_id or document_id}"


class Retriever:
    """Top-K semantic retrieval scoped to a workspace and optional space.

    Parameters
    ----------
    embedding_provider:
        Embeds the query with the configured embedding model.
    store:
        Source of nearest-neighbour rows and chunk counts.
    settings:
        Supplies the embedding model, top-K, chunk size and link prefix.
    cache:
        Optional cache for query vectors.
    chunker:
        Chunker used for the legacy excerpt fallback.  Must match the one
        used at indexing time.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        store: IEmbeddingStore,
        settings: Settings,
        cache: ICacheProvider | None = None,
        chunker: TextChunker | None = None,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._store = store
        self._settings = settings
        self._cache = cache
        self._chunker = chunker or TextChunker(settings.chunk_size)

    async def retrieve(
        self,
        query: str,
        workspace_id: str,
        space_id: str | None = None,
    ) -> list[RetrievedContext]:
        """Return up to ``RETRIEVAL_TOP_K`` contexts, most similar first."""
        model = self._settings.ai_embedding_model
        if not model:
            logger.warning("retrieval_skipped", reason="embedding_model_not_configured")
            return []

        if not await self._store.table_exists():
            logger.warning("retrieval_skipped", reason="embeddings_table_missing")
            return []

        query_vector = await self._embed_query(query, model)
        rows = await self._store.nearest_neighbors(
            query_vector,
            workspace_id=workspace_id,
            space_id=space_id,
            limit=self._settings.retrieval_top_k,
            model_name=model,
        )
        if not rows:
            logger.info("retrieval_empty", workspace_id=workspace_id, space_id=space_id)
            return []

        counts = await self._store.chunk_counts_by_document(
            [r.document_id for r in rows], workspace_id
        )
        contexts = [self._to_context(row, counts.get(row.document_id, 0)) for row in rows]

        logger.info(
            "retrieval_complete",
            workspace_id=workspace_id,
            space_id=space_id,
            chunks=len(contexts),
            documents=len({c.document_id for c in contexts}),
        )
        return contexts

    async def _embed_query(self, query: str, model: str) -> list[float]:
        if self._cache is None:
            return await self._embedding_provider.embed(query, model)

        key = "query:" + hashlib.sha256(f"{model}\x00{query}".encode()).hexdigest()
        cached = await self._cache.get(key)
        if cached is not None:
            return cached
        vector = await self._embedding_provider.embed(query, model)
        await self._cache.set(key, vector)
        return vector

    def _to_context(self, row: NeighborRow, chunk_count: int) -> RetrievedContext:
        return RetrievedContext(
            document_id=row.document_id,
            space_id=row.space_id,
            title=row.title,
            slug_id=row.slug_id,
            space_slug=row.space_slug,
            link=build_link(self._settings.page_link_prefix, row.slug_id, row.document_id),
            chunk_index=row.chunk_index,
            chunk_count=chunk_count,
            distance=row.distance,
            similarity=similarity_from_distance(row.distance),
            text=self._excerpt(row),
        )

    def _excerpt(self, row: NeighborRow) -> str:
        if row.chunk_text is not None:
            return row.chunk_text
        rebuilt = self._chunker.chunk_at(row.text_content, row.chunk_index)
        if rebuilt is not None:
            return rebuilt
        return row.text_content[: self._chunker.chunk_size]
