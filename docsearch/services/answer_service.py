"""Answer orchestration: retrieval-augmented ask and writing generation.

``ask`` returns an async iterator of stream events:

    1. SourcesAndMetaEvent  -- retrieved passages plus chunk/document counts
    2. ContentDeltaEvent*   -- answer text as the provider streams it
    3. DoneEvent            -- on success only

Configuration is validated when ``ask`` is called, before the iterator
exists, so a disabled driver surfaces as a plain error and not as a
half-written stream.  Once iteration starts, any failure is logged and
reported as a single :class:`ErrorEvent`.

The iterator owns the upstream completion stream.  Its ``finally`` block
closes that stream whether the answer finished, failed, or the consumer
stopped early (``aclose`` or task cancellation on client disconnect).
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import structlog

from docsearch.config.loader import DEFAULT_CONFIG
from docsearch.config.settings import Settings
from docsearch.interfaces.completion_provider import ChatMessage, ICompletionProvider
from docsearch.models.generation import AiAction
from docsearch.models.retrieval import RetrievedContext
from docsearch.models.streaming import (
    AskMeta,
    ContentDeltaEvent,
    DoneEvent,
    ErrorEvent,
    SourcePayload,
    SourcesAndMetaEvent,
    StreamEvent,
)
from docsearch.services.retriever import Retriever
from docsearch.utils.errors import (
    ConfigurationError,
    GenerationError,
    ProviderCallError,
    ProviderConfigError,
)
from docsearch.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

ASK_FAILED_MESSAGE = "AI ask stream failed"
GENERATE_FAILED_MESSAGE = "AI generation failed"


def build_context_block(contexts: list[RetrievedContext], no_context: str) -> str:
    """Render retrieved passages as numbered, linked sources."""
    if not contexts:
        return no_context
    entries = []
    for position, context in enumerate(contexts, start=1):
        title = f": {context.title}" if context.title else ""
        entries.append(
            f"Source #{position} (page {context.document_id}{title}):\n"
            f"{context.text}\nLink: {context.link}"
        )
    return "\n---\n".join(entries)


def build_ask_messages(
    query: str,
    contexts: list[RetrievedContext],
    system_prompt: str,
    no_context: str,
) -> list[ChatMessage]:
    block = build_context_block(contexts, no_context)
    return [
        ChatMessage(role="system", content=system_prompt),
        ChatMessage(role="user", content=f"Context:\n{block}\n\nQuestion: {query}"),
    ]


class AnswerService:
    """Streams answers grounded in retrieved passages, and rewrites text.

    Parameters
    ----------
    completion_provider:
        Generates the answer text.
    retriever:
        Supplies passages for ``ask``.
    settings:
        Driver selection and completion model.
    prompts:
        Loaded configuration dict with ``ask`` and ``generation`` sections
        (see ``config/config.yaml``).  Built-in defaults apply when omitted.
    """

    def __init__(
        self,
        completion_provider: ICompletionProvider,
        retriever: Retriever,
        settings: Settings,
        prompts: dict[str, Any] | None = None,
    ) -> None:
        self._provider = completion_provider
        self._retriever = retriever
        self._settings = settings
        prompts = prompts or {}
        self._ask_prompts = {**DEFAULT_CONFIG["ask"], **prompts.get("ask", {})}
        self._generation_prompts = {**DEFAULT_CONFIG["generation"], **prompts.get("generation", {})}

    def ensure_enabled(self) -> None:
        """Raise unless generation is configured end to end."""
        if not self._settings.is_generation_enabled():
            raise ConfigurationError(
                message="AI driver is not configured. Set AI_DRIVER=openai to enable AI features."
            )
        if not self._provider.is_available():
            raise ProviderConfigError(
                message="OPENAI_API_KEY and OPENAI_API_URL must be configured",
                provider_name=self._provider.get_provider_name(),
            )

    # ------------------------------------------------------------------
    # Ask
    # ------------------------------------------------------------------

    def ask(
        self,
        query: str,
        workspace_id: str | None = None,
        space_id: str | None = None,
    ) -> AsyncGenerator[StreamEvent, None]:
        """Validate configuration, then return the event stream for *query*."""
        self.ensure_enabled()
        return self._ask_events(query, workspace_id, space_id)

    async def _ask_events(
        self,
        query: str,
        workspace_id: str | None,
        space_id: str | None,
    ) -> AsyncGenerator[StreamEvent, None]:
        model = self._settings.ai_completion_model
        deltas: AsyncGenerator[str, None] | None = None
        delta_count = 0
        outcome = "cancelled"

        try:
            contexts: list[RetrievedContext] = []
            if workspace_id:
                contexts = await self._retriever.retrieve(query, workspace_id, space_id)

            yield SourcesAndMetaEvent(
                sources=[SourcePayload.from_context(c) for c in contexts],
                meta=AskMeta(
                    chunk_count=len(contexts),
                    document_count=len({c.document_id for c in contexts}),
                ),
            )

            messages = build_ask_messages(
                query,
                contexts,
                system_prompt=self._ask_prompts["system_prompt"],
                no_context=self._ask_prompts["no_context"],
            )
            logger.info(
                "ask_started",
                model=model,
                workspace_id=workspace_id,
                space_id=space_id,
                contexts=len(contexts),
                query_preview=query[:80],
            )

            deltas = self._provider.stream(model, messages)
            async for delta in deltas:
                delta_count += 1
                yield ContentDeltaEvent(content=delta)

            outcome = "done"
            yield DoneEvent()
        except Exception as exc:
            outcome = "failed"
            logger.error(
                "ask_stream_failed",
                error_type=type(exc).__name__,
                error=str(exc),
                workspace_id=workspace_id,
            )
            yield ErrorEvent(error=ASK_FAILED_MESSAGE)
        finally:
            if deltas is not None:
                await deltas.aclose()
            logger.info("ask_stream_closed", outcome=outcome, deltas=delta_count)

    # ------------------------------------------------------------------
    # Writing generation
    # ------------------------------------------------------------------

    def build_generate_messages(
        self,
        content: str,
        action: AiAction | None = None,
        prompt: str | None = None,
    ) -> list[ChatMessage]:
        """Two-message prompt for the writing assistant.

        The instruction is the caller's *prompt* if given, otherwise the
        configured text for *action*.  Content follows the instruction.
        """
        instruction = prompt or None
        if instruction is None and action is not None and action is not AiAction.CUSTOM:
            instruction = self._generation_prompts.get("actions", {}).get(action.value)

        if instruction and content:
            user = f"{instruction}\n\n{content}"
        else:
            user = instruction or content or self._generation_prompts["default_instruction"]

        return [
            ChatMessage(role="system", content=self._generation_prompts["system_prompt"]),
            ChatMessage(role="user", content=user),
        ]

    async def generate(
        self,
        content: str,
        action: AiAction | None = None,
        prompt: str | None = None,
    ) -> str:
        """Return the full rewritten text."""
        self.ensure_enabled()
        messages = self.build_generate_messages(content, action, prompt)
        model = self._settings.ai_completion_model
        try:
            result = await self._provider.complete(model, messages)
        except ProviderCallError as exc:
            logger.error("generate_failed", model=model, action=action, error=str(exc))
            raise GenerationError(
                message=GENERATE_FAILED_MESSAGE,
                provider_name=exc.provider_name,
            ) from exc
        logger.info("generate_complete", model=model, action=action, chars=len(result))
        return result

    def generate_stream(
        self,
        content: str,
        action: AiAction | None = None,
        prompt: str | None = None,
    ) -> AsyncGenerator[StreamEvent, None]:
        """Validate configuration, then return a ContentDelta... Done stream."""
        self.ensure_enabled()
        messages = self.build_generate_messages(content, action, prompt)
        return self._generate_events(messages)

    async def _generate_events(
        self,
        messages: list[ChatMessage],
    ) -> AsyncGenerator[StreamEvent, None]:
        model = self._settings.ai_completion_model
        deltas = self._provider.stream(model, messages)
        try:
            async for delta in deltas:
                yield ContentDeltaEvent(content=delta)
            yield DoneEvent()
        except Exception as exc:
            logger.error("generate_stream_failed", model=model, error=str(exc))
            yield ErrorEvent(error=GENERATE_FAILED_MESSAGE)
        finally:
            await deltas.aclose()
