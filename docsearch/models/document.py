"""Document model: the read-only view of the external document store.

docsearch never writes documents.  It reads their current plain text and
identity (workspace, space, slug) when indexing and when building links
for retrieved passages.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """A document as seen by the indexing and retrieval services."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique document identifier.")
    workspace_id: str = Field(description="Owning workspace (tenant).")
    space_id: str | None = Field(default=None, description="Space the document lives in.")
    title: str | None = Field(default=None, description="Document title, may be empty.")
    text_content: str = Field(default="", description="Current plain-text body.")
    slug_id: str | None = Field(default=None, description="Short slug used in page links.")
    space_slug: str | None = Field(default=None, description="Slug of the owning space.")
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = Field(default=None, description="Soft-delete timestamp.")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
