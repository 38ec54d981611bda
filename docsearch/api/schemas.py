"""Request and response schemas for the docsearch HTTP API.

Bodies use camelCase on the wire (``workspaceId``); snake_case field
names are accepted as well.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docsearch.models.generation import AiAction
from docsearch.models.jobs import DocumentEvent


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AskRequest(_ApiModel):
    """Question to answer from the workspace's indexed documents."""

    query: str = Field(..., min_length=1, max_length=2000)
    workspace_id: str | None = None
    space_id: str | None = None


class GenerateRequest(_ApiModel):
    """Writing-assistant request."""

    action: AiAction | None = None
    content: str = Field(..., min_length=1, max_length=20000)
    prompt: str | None = Field(default=None, max_length=4000)


class GenerateResponse(_ApiModel):
    content: str


class IndexEventRequest(_ApiModel):
    """Document lifecycle notification from the document store."""

    event: DocumentEvent
    document_ids: list[str] = Field(..., min_length=1)
    workspace_id: str | None = None


class JobAcceptedResponse(_ApiModel):
    job_id: str
    kind: str


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
