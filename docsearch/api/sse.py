"""Server-sent-event framing for stream events.

Each event becomes one ``data:`` frame followed by a blank line::

    data: {"sources": [...], "meta": {"chunkCount": 2, "documentCount": 1}}

    data: {"content": "Hello"}

    data: [DONE]

The writer stops as soon as the client disconnects and always closes the
event iterator, which in turn closes the upstream provider stream.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, AsyncIterator

import structlog
from fastapi import Request
from fastapi.responses import StreamingResponse

from docsearch.models.streaming import DoneEvent, StreamEvent
from docsearch.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

SSE_DONE_FRAME = "data: [DONE]\n\n"

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: StreamEvent) -> str:
    """Render one event as an SSE frame."""
    if isinstance(event, DoneEvent):
        return SSE_DONE_FRAME
    return "data: " + json.dumps(event.to_payload(), ensure_ascii=False) + "\n\n"


async def sse_frames(
    events: AsyncGenerator[StreamEvent, None],
    request: Request | None = None,
) -> AsyncIterator[str]:
    """Yield SSE frames for *events* until they end or the client leaves."""
    try:
        async for event in events:
            if request is not None and await request.is_disconnected():
                _logger.info("sse_client_disconnected", path=str(request.url.path))
                break
            yield encode_event(event)
    finally:
        await events.aclose()


def sse_response(events: AsyncGenerator[StreamEvent, None], request: Request) -> StreamingResponse:
    return StreamingResponse(
        sse_frames(events, request),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )
