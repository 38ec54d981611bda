"""Abstract base class for text-embedding providers.

Implementations turn one piece of text into one vector.  Both indexing
(one call per chunk) and retrieval (one call per query) go through this
contract, so the model name is passed per call rather than fixed on the
instance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider -- any OpenAI-compatible ``/embeddings`` endpoint
# Located in: docsearch/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for the embedding service used by indexing and retrieval."""

    @abstractmethod
    async def embed(self, text: str, model: str) -> list[float]:
        """Return the embedding vector for *text* under *model*.

        Parameters
        ----------
        text:
            Chunk or query text.  Sent verbatim.
        model:
            Provider model identifier, e.g. ``"text-embedding-3-small"``.

        Returns
        -------
        list[float]
            The embedding vector.  Its length is the model's dimension.

        Raises
        ------
        docsearch.utils.errors.ProviderConfigError
            If no API key or base URL is configured.
        docsearch.utils.errors.ProviderCallError
            If the call fails after the single retry allowed for
            transient network errors, or the response carries no vector.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"openai_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials and base URL are configured."""
