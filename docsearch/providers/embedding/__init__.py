"""Embedding provider implementations.

OpenAIEmbeddingProvider targets any OpenAI-compatible ``/embeddings``
endpoint.  To add another backend, implement IEmbeddingProvider and
register it in ``docsearch/main.py``.
"""

from docsearch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
