"""Events produced by the streaming answer and generation services.

An ask stream is an ordered sequence of::

    SourcesAndMetaEvent   (at most one, before any content)
    ContentDeltaEvent*    (generated text fragments, in provider order)
    DoneEvent             (exactly one on success, always last)

``ErrorEvent`` replaces ``DoneEvent`` when generation fails after the
stream has started.  ``to_payload`` gives the JSON object carried by the
SSE ``data:`` line; ``DoneEvent`` has none and is written as ``[DONE]``.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docsearch.models.retrieval import RetrievedContext


class _WireModel(BaseModel):
    """Frozen model serialised with camelCase keys."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class SourcePayload(_WireModel):
    """Citation metadata for one retrieved passage."""

    document_id: str
    title: str | None = None
    slug_id: str | None = None
    space_slug: str | None = None
    link: str
    chunk_index: int
    chunk_count: int
    excerpt: str
    similarity: float
    distance: float

    @classmethod
    def from_context(cls, context: RetrievedContext) -> SourcePayload:
        return cls(
            document_id=context.document_id,
            title=context.title,
            slug_id=context.slug_id,
            space_slug=context.space_slug,
            link=context.link,
            chunk_index=context.chunk_index,
            chunk_count=context.chunk_count,
            excerpt=context.text,
            similarity=context.similarity,
            distance=context.distance,
        )


class AskMeta(_WireModel):
    chunk_count: int = Field(ge=0, description="Number of retrieved passages.")
    document_count: int = Field(ge=0, description="Distinct documents among them.")


class SourcesAndMetaEvent(_WireModel):
    sources: list[SourcePayload] = Field(default_factory=list)
    meta: AskMeta

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ContentDeltaEvent(_WireModel):
    content: str

    def to_payload(self) -> dict[str, Any]:
        return {"content": self.content}


class ErrorEvent(_WireModel):
    error: str

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error}


class DoneEvent(_WireModel):
    def to_payload(self) -> None:
        return None


StreamEvent = Union[SourcesAndMetaEvent, ContentDeltaEvent, ErrorEvent, DoneEvent]
