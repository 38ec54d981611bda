"""Embedding store models.

``NewChunk`` is what the indexing consumer hands to the store; the store
fills in ids and timestamps.  ``NeighborRow`` and ``RecentChunk`` are the
read-side projections returned by nearest-neighbour search and the status
query.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NewChunk(BaseModel):
    """One chunk of a document, embedded and ready to be written."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(ge=0, description="0-based position within the document.")
    chunk_start: int = Field(ge=0, description="Offset in the whitespace-normalised text.")
    chunk_length: int = Field(ge=0, description="Length of the chunk text in characters.")
    text: str = Field(description="Exact chunk text that was embedded.")
    content_hash: str = Field(description="SHA-256 hex digest of ``text``.")
    embedding: list[float] = Field(description="Embedding vector for ``text``.")
    model_name: str
    model_dimensions: int = Field(gt=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class NeighborRow(BaseModel):
    """A stored chunk joined with its document, ranked by distance."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    space_id: str | None = None
    chunk_index: int
    distance: float = Field(ge=0.0, description="Euclidean (L2) distance to the query.")
    title: str | None = None
    slug_id: str | None = None
    space_slug: str | None = None
    text_content: str = Field(default="", description="Document text, loaded only when chunk_text is missing.")
    chunk_text: str | None = Field(default=None, description="Persisted chunk text, if stored.")


class RecentChunk(BaseModel):
    """A recently indexed chunk, shown on the status page."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    chunk_index: int
    created_at: str
    title: str | None = None
    slug_id: str | None = None
    space_slug: str | None = None
