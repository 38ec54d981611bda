"""OpenAI chat-completion provider adapter.

Implements :class:`ICompletionProvider` against any OpenAI-compatible
``/chat/completions`` endpoint through the ``openai`` SDK.

Streaming reads the raw server-sent-event lines instead of the SDK's
parsed stream so that one malformed or partial line is skipped rather
than aborting the whole answer:

    data: {"choices":[{"delta":{"content":"Hel"}}]}
    data: {"choices":[{"delta":{"content":"lo"}}]}
    data: [DONE]

Only ``choices[0].delta.content`` is forwarded; empty deltas are dropped.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import openai
import structlog

from docsearch.config.settings import Settings
from docsearch.interfaces.completion_provider import ChatMessage, ICompletionProvider
from docsearch.providers.openai_client import build_openai_client, is_configured
from docsearch.utils.errors import ProviderCallError

logger = structlog.get_logger(logger_name=__name__)

_SSE_DATA_PREFIX = "data:"
_SSE_DONE = "[DONE]"


def parse_sse_delta(line: str) -> str | None:
    """Extract the content delta from one SSE line, or ``None`` to skip it."""
    line = line.strip()
    if not line.startswith(_SSE_DATA_PREFIX):
        return None
    payload = line[len(_SSE_DATA_PREFIX):].strip()
    if not payload or payload == _SSE_DONE:
        return None
    try:
        parsed = json.loads(payload)
        content = parsed["choices"][0]["delta"].get("content")
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        return None
    if not isinstance(content, str) or not content:
        return None
    return content


def _to_wire(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    return [{"role": m.role, "content": m.content} for m in messages]


class OpenAICompletionProvider(ICompletionProvider):
    """Completion provider for OpenAI-compatible chat APIs.

    Parameters
    ----------
    settings:
        Supplies ``OPENAI_API_KEY``, ``OPENAI_API_URL`` and the timeout.
    http_client:
        Shared ``httpx.AsyncClient`` the SDK sends requests through.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._http_client = http_client
        self._client: openai.AsyncOpenAI | None = None

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = build_openai_client(
                self._settings, self._http_client, self.get_provider_name()
            )
        return self._client

    # ------------------------------------------------------------------
    # ICompletionProvider implementation
    # ------------------------------------------------------------------

    async def complete(self, model: str, messages: list[ChatMessage]) -> str:
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=_to_wire(messages),
            )
        except openai.APIStatusError as exc:
            raise ProviderCallError(
                message=f"Completion failed: HTTP {exc.status_code} {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise ProviderCallError(
                message=f"Completion request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        choices = response.choices or []
        content = choices[0].message.content if choices else None
        logger.info("openai_completion", model=model, chars=len(content or ""))
        return content or ""

    async def stream(self, model: str, messages: list[ChatMessage]) -> AsyncGenerator[str, None]:
        client = self._get_client()
        deltas = 0
        try:
            async with client.chat.completions.with_streaming_response.create(
                model=model,
                messages=_to_wire(messages),
                stream=True,
            ) as response:
                async for line in response.iter_lines():
                    delta = parse_sse_delta(line)
                    if delta is None:
                        continue
                    deltas += 1
                    yield delta
        except openai.APIStatusError as exc:
            raise ProviderCallError(
                message=f"Completion stream failed: HTTP {exc.status_code} {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc
        except (openai.APIError, httpx.HTTPError) as exc:
            raise ProviderCallError(
                message=f"Completion stream interrupted: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            logger.info("openai_completion_stream_closed", model=model, deltas=deltas)

    def get_provider_name(self) -> str:
        return "openai_completion"

    def is_available(self) -> bool:
        return is_configured(self._settings)
