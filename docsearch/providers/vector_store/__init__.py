"""Embedding store implementations.

SQLiteEmbeddingStore keeps chunk vectors next to the document tables and
ranks them by L2 distance with numpy.  To move to a dedicated vector
database, implement IEmbeddingStore and register it in ``docsearch/main.py``.
"""

from docsearch.providers.vector_store.sqlite_embedding_store import SQLiteEmbeddingStore

__all__ = ["SQLiteEmbeddingStore"]
