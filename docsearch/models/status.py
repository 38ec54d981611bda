"""Indexing health models returned by the status endpoint.

Every optional field is omitted when its sub-query failed or when its
preconditions (schema present, workspace given) were not met.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _StatusModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class QueueCounts(_StatusModel):
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0


class DocumentCounts(_StatusModel):
    total_documents: int = Field(ge=0)
    documents_with_embeddings: int = Field(ge=0)
    documents_without_embeddings: int = Field(ge=0)


class RecentChunkView(_StatusModel):
    document_id: str
    chunk_index: int
    created_at: str
    title: str | None = None
    slug_id: str | None = None
    space_slug: str | None = None
    link: str


class ChunkStats(_StatusModel):
    total_chunks: int = Field(ge=0)
    recent: list[RecentChunkView] = Field(default_factory=list)


class IndexStatus(_StatusModel):
    driver: str | None = None
    embeddings_table: bool
    queue_counts: QueueCounts | None = None
    document_counts: DocumentCounts | None = None
    chunk_stats: ChunkStats | None = None
