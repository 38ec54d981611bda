"""Retrieval result model.

A ``RetrievedContext`` is built per nearest-neighbour hit and lives only
for the duration of one ask request.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RetrievedContext(BaseModel):
    """One retrieved passage with the document identity needed to cite it."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    space_id: str | None = None
    title: str | None = None
    slug_id: str | None = None
    space_slug: str | None = None
    link: str = Field(description="Relative page link, e.g. ``/page/abc123``.")
    chunk_index: int = Field(ge=0)
    chunk_count: int = Field(ge=0, description="Live chunks stored for this document.")
    distance: float = Field(ge=0.0)
    similarity: float = Field(gt=0.0, le=1.0, description="1 / (1 + distance).")
    text: str = Field(description="Excerpt used as prompt context.")
