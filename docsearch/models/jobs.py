"""Indexing job models.

Jobs are a closed union discriminated on ``kind``:

    WorkspaceCreateJob   -- index every live document of a workspace
    WorkspaceDeleteJob   -- drop every chunk of a workspace
    DocumentReindexJob   -- rebuild chunks for specific documents
    DocumentRemoveJob    -- drop chunks for specific documents

Document lifecycle events map onto the two document jobs through
:func:`job_for_event`.  Delivery is at-least-once, so every handler in
:class:`~docsearch.services.indexing_consumer.IndexingConsumer` must be
safe to run twice.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class WorkspaceCreateJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["workspace_create"] = "workspace_create"
    workspace_id: str


class WorkspaceDeleteJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["workspace_delete"] = "workspace_delete"
    workspace_id: str


class DocumentReindexJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["document_reindex"] = "document_reindex"
    workspace_id: str
    document_ids: tuple[str, ...] = Field(min_length=1)


class DocumentRemoveJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["document_remove"] = "document_remove"
    workspace_id: str
    document_ids: tuple[str, ...] = Field(min_length=1)


IndexingJob = Annotated[
    Union[WorkspaceCreateJob, WorkspaceDeleteJob, DocumentReindexJob, DocumentRemoveJob],
    Field(discriminator="kind"),
]

# Every concrete job type.  The consumer checks its handler table against
# this tuple at construction time.
JOB_TYPES: tuple[type[BaseModel], ...] = (
    WorkspaceCreateJob,
    WorkspaceDeleteJob,
    DocumentReindexJob,
    DocumentRemoveJob,
)

_JOB_ADAPTER: TypeAdapter[IndexingJob] = TypeAdapter(IndexingJob)


def parse_job(payload: dict) -> IndexingJob:
    """Validate a serialised job payload into its concrete job model."""
    return _JOB_ADAPTER.validate_python(payload)


class DocumentEvent(str, Enum):
    """Lifecycle events emitted by the document store."""

    CREATED = "created"
    CONTENT_UPDATED = "content_updated"
    MOVED_TO_SPACE = "moved_to_space"
    RESTORED = "restored"
    SOFT_DELETED = "soft_deleted"
    DELETED = "deleted"


_REINDEX_EVENTS = frozenset(
    {
        DocumentEvent.CREATED,
        DocumentEvent.CONTENT_UPDATED,
        DocumentEvent.MOVED_TO_SPACE,
        DocumentEvent.RESTORED,
    }
)


def job_for_event(
    event: DocumentEvent,
    document_ids: list[str] | tuple[str, ...],
    workspace_id: str,
) -> DocumentReindexJob | DocumentRemoveJob:
    """Map a document lifecycle event to the indexing job it triggers."""
    ids = tuple(document_ids)
    if event in _REINDEX_EVENTS:
        return DocumentReindexJob(workspace_id=workspace_id, document_ids=ids)
    return DocumentRemoveJob(workspace_id=workspace_id, document_ids=ids)
