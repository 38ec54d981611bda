"""OpenAI embedding provider adapter.

Wraps ``POST {OPENAI_API_URL}/embeddings`` through the ``openai`` SDK to
implement :class:`IEmbeddingProvider`.  One text in, one vector out.

Transient network failures (connect timeout, connection reset, socket
errors) are retried exactly once with the identical request.  Anything
else, including HTTP error statuses and a response without a vector, is
raised immediately as :class:`ProviderCallError`.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from docsearch.config.settings import Settings
from docsearch.interfaces.embedding_provider import IEmbeddingProvider
from docsearch.providers.openai_client import build_openai_client, is_configured
from docsearch.utils.errors import ProviderCallError, TransientProviderError

logger = structlog.get_logger(logger_name=__name__)

# Substrings of transport error messages that indicate a retryable failure.
_TRANSIENT_MARKERS = ("timeout", "timed out", "socket", "connection reset", "fetch failed")


def is_transient_error(exc: BaseException) -> bool:
    """Return ``True`` if *exc* is a network-level failure worth one retry."""
    if isinstance(exc, TransientProviderError):
        return True
    if isinstance(exc, openai.APIStatusError):
        return False
    if isinstance(
        exc,
        (openai.APIConnectionError, httpx.TimeoutException, httpx.NetworkError, ConnectionResetError),
    ):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider for any OpenAI-compatible embeddings endpoint.

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
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, text: str, model: str) -> list[float]:
        """Embed *text*, retrying once on a transient network failure."""
        client = self._get_client()
        try:
            return await self._request(client, text, model)
        except ProviderCallError:
            raise
        except Exception as exc:
            if not is_transient_error(exc):
                raise self._wrap(exc) from exc
            logger.warning(
                "embedding_retry",
                model=model,
                error_type=type(exc).__name__,
                error=str(exc),
            )

        try:
            return await self._request(client, text, model)
        except ProviderCallError:
            raise
        except Exception as exc:
            raise self._wrap(exc) from exc

    async def _request(self, client: openai.AsyncOpenAI, text: str, model: str) -> list[float]:
        response = await client.embeddings.create(model=model, input=text, encoding_format="float")
        data = response.data or []
        vector = data[0].embedding if data else None
        if not vector:
            raise ProviderCallError(
                message="Embedding response did not contain a vector",
                provider_name=self.get_provider_name(),
            )
        logger.debug("openai_embedding", model=model, dimensions=len(vector), chars=len(text))
        return list(vector)

    def _wrap(self, exc: Exception) -> ProviderCallError:
        if isinstance(exc, openai.APIStatusError):
            return ProviderCallError(
                message=f"Embedding failed: HTTP {exc.status_code} {exc.message}",
                provider_name=self.get_provider_name(),
            )
        if is_transient_error(exc):
            return TransientProviderError(
                message=f"Embedding request failed after retry: {exc}",
                provider_name=self.get_provider_name(),
            )
        return ProviderCallError(
            message=f"Embedding request failed: {exc}",
            provider_name=self.get_provider_name(),
        )

    def get_provider_name(self) -> str:
        return "openai_embedding"

    def is_available(self) -> bool:
        return is_configured(self._settings)
