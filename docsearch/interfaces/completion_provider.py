"""Abstract base class for chat-completion providers.

Two call styles are offered: :meth:`ICompletionProvider.complete` returns
the whole answer, :meth:`ICompletionProvider.stream` yields content deltas
as they arrive.  :meth:`ICompletionProvider.complete_streaming` is the
callback form built on top of ``stream``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class ChatMessage:
    """One message of a chat prompt."""

    role: str  # "system" | "user" | "assistant"
    content: str


class ICompletionProvider(ABC):
    """Contract for text generation used by the answer service."""

    @abstractmethod
    async def complete(self, model: str, messages: list[ChatMessage]) -> str:
        """Return the full completion text (empty string if none).

        Raises
        ------
        docsearch.utils.errors.ProviderConfigError
            If no API key or base URL is configured.
        docsearch.utils.errors.ProviderCallError
            On a non-success response or transport failure.
        """

    @abstractmethod
    def stream(self, model: str, messages: list[ChatMessage]) -> AsyncGenerator[str, None]:
        """Yield non-empty content deltas in the order the provider emits them.

        A non-success HTTP status raises before the first delta.  Lines that
        cannot be parsed are skipped.  Closing the iterator early (``aclose``
        or task cancellation) releases the upstream connection.
        """

    async def complete_streaming(
        self,
        model: str,
        messages: list[ChatMessage],
        on_delta: Callable[[str], Awaitable[None] | None],
    ) -> None:
        """Invoke *on_delta* for each delta; return when the stream ends.

        *on_delta* may be a plain function or a coroutine function.
        """
        deltas = self.stream(model, messages)
        try:
            async for delta in deltas:
                result = on_delta(delta)
                if result is not None:
                    await result
        finally:
            await deltas.aclose()

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"openai_completion"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials and base URL are configured."""
