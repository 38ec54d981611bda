"""FastAPI routes for docsearch.

Endpoint                                   Method  Description
-------------------------------------------------------------------------
/api/health                                GET     Liveness + provider status
/api/ai/ask                                POST    Retrieval-augmented answer (SSE)
/api/ai/generate                           POST    Writing assistant, whole response
/api/ai/generate/stream                    POST    Writing assistant (SSE)
/api/ai/status                             GET     Indexing health report
/api/ai/index/events                       POST    Document lifecycle hook -> job
/api/ai/index/workspaces/{workspace_id}    POST    Enable search: index workspace
/api/ai/index/workspaces/{workspace_id}    DELETE  Disable search: drop workspace

Services are resolved from ``app.state`` (populated by ``_build_all`` in
``docsearch/main.py``) through ``Annotated[..., Depends(...)]`` helpers.
Where a body carries no ``workspaceId`` the ``X-Workspace-Id`` header is
used.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from docsearch import __version__
from docsearch.api.schemas import (
    AskRequest,
    GenerateRequest,
    GenerateResponse,
    HealthResponse,
    IndexEventRequest,
    JobAcceptedResponse,
)
from docsearch.api.sse import sse_response
from docsearch.interfaces.job_queue import IJobQueue
from docsearch.models.jobs import IndexingJob, WorkspaceCreateJob, WorkspaceDeleteJob, job_for_event
from docsearch.models.status import IndexStatus
from docsearch.services.answer_service import AnswerService
from docsearch.services.status_service import StatusService
from docsearch.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_answer_service(request: Request) -> AnswerService:
    return request.app.state.answer_service


def _get_status_service(request: Request) -> StatusService:
    return request.app.state.status_service


def _get_job_queue(request: Request) -> IJobQueue:
    return request.app.state.job_queue


AnswerServiceDep = Annotated[AnswerService, Depends(_get_answer_service)]
StatusServiceDep = Annotated[StatusService, Depends(_get_status_service)]
JobQueueDep = Annotated[IJobQueue, Depends(_get_job_queue)]
WorkspaceHeader = Annotated[str | None, Header(alias="X-Workspace-Id")]


def _require_workspace(body_value: str | None, header_value: str | None) -> str:
    workspace_id = body_value or header_value
    if not workspace_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="workspaceId is required (body field or X-Workspace-Id header)",
        )
    return workspace_id


async def _enqueue(queue: IJobQueue, job: IndexingJob) -> JobAcceptedResponse:
    job_id = await queue.enqueue(job)
    return JobAcceptedResponse(job_id=job_id, kind=job.kind)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    state = request.app.state
    providers: dict[str, bool] = {
        "completion": state.completion_provider.is_available(),
        "embedding": state.embedding_provider.is_available(),
        "worker": state.indexing_worker.running,
    }
    try:
        providers["embeddings_table"] = await state.embedding_store.table_exists()
    except Exception as exc:
        _logger.warning("health_table_check_failed", error=str(exc))
        providers["embeddings_table"] = False

    return HealthResponse(
        status="healthy" if providers["embeddings_table"] else "degraded",
        version=__version__,
        providers=providers,
    )


# ---------------------------------------------------------------------------
# Ask / generate
# ---------------------------------------------------------------------------


@router.post("/ai/ask", response_class=StreamingResponse)
async def ask(
    body: AskRequest,
    request: Request,
    answer_service: AnswerServiceDep,
    x_workspace_id: WorkspaceHeader = None,
) -> StreamingResponse:
    """Stream sources, then answer text, then ``[DONE]``."""
    events = answer_service.ask(
        body.query,
        workspace_id=body.workspace_id or x_workspace_id,
        space_id=body.space_id,
    )
    return sse_response(events, request)


@router.post("/ai/generate", response_model=GenerateResponse)
async def generate(body: GenerateRequest, answer_service: AnswerServiceDep) -> GenerateResponse:
    content = await answer_service.generate(body.content, action=body.action, prompt=body.prompt)
    return GenerateResponse(content=content)


@router.post("/ai/generate/stream", response_class=StreamingResponse)
async def generate_stream(
    body: GenerateRequest,
    request: Request,
    answer_service: AnswerServiceDep,
) -> StreamingResponse:
    events = answer_service.generate_stream(body.content, action=body.action, prompt=body.prompt)
    return sse_response(events, request)


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@router.get(
    "/ai/status",
    response_model=IndexStatus,
    response_model_exclude_none=True,
    response_model_by_alias=True,
)
async def index_status(
    status_service: StatusServiceDep,
    workspace_id: Annotated[str | None, Query(alias="workspaceId")] = None,
    x_workspace_id: WorkspaceHeader = None,
) -> IndexStatus:
    return await status_service.status(workspace_id or x_workspace_id)


# ---------------------------------------------------------------------------
# Indexing triggers
# ---------------------------------------------------------------------------


@router.post(
    "/ai/index/events",
    response_model=JobAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def document_event(
    body: IndexEventRequest,
    queue: JobQueueDep,
    x_workspace_id: WorkspaceHeader = None,
) -> JobAcceptedResponse:
    """Translate a document lifecycle event into an indexing job."""
    workspace_id = _require_workspace(body.workspace_id, x_workspace_id)
    job = job_for_event(body.event, body.document_ids, workspace_id)
    _logger.info(
        "document_event_received",
        document_event=body.event.value,
        documents=len(body.document_ids),
        workspace_id=workspace_id,
    )
    return await _enqueue(queue, job)


@router.post(
    "/ai/index/workspaces/{workspace_id}",
    response_model=JobAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def enable_workspace_search(workspace_id: str, queue: JobQueueDep) -> JobAcceptedResponse:
    return await _enqueue(queue, WorkspaceCreateJob(workspace_id=workspace_id))


@router.delete(
    "/ai/index/workspaces/{workspace_id}",
    response_model=JobAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def disable_workspace_search(workspace_id: str, queue: JobQueueDep) -> JobAcceptedResponse:
    return await _enqueue(queue, WorkspaceDeleteJob(workspace_id=workspace_id))
