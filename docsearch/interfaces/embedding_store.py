"""Abstract base class for the chunk embedding store.

The store holds one row per (document, chunk_index) for the active
embedding model.  Rows are only ever written in bulk per document
(delete-then-insert inside one transaction) and deleted in bulk; they are
never patched in place.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from docsearch.models.embedding import NeighborRow, NewChunk, RecentChunk


class IEmbeddingStore(ABC):
    """Contract for persisting chunk embeddings and searching them."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create the embedding table and its indices if they do not exist."""

    @abstractmethod
    async def table_exists(self) -> bool:
        """Return ``True`` if the embedding table has been created."""

    @abstractmethod
    async def replace_document_chunks(
        self,
        document_id: str,
        workspace_id: str,
        space_id: str | None,
        chunks: Sequence[NewChunk],
    ) -> None:
        """Atomically replace every chunk of one document.

        All existing rows for *document_id* in *workspace_id* are deleted and
        *chunks* are inserted in the same transaction.  Readers never observe
        a mix of old and new rows.  An empty *chunks* leaves the document
        with no rows.
        """

    @abstractmethod
    async def delete_document_chunks(self, document_ids: Sequence[str], workspace_id: str) -> int:
        """Delete all chunks of the given documents.  Returns rows removed."""

    @abstractmethod
    async def delete_workspace_chunks(self, workspace_id: str) -> int:
        """Delete all chunks of a workspace.  Returns rows removed."""

    @abstractmethod
    async def nearest_neighbors(
        self,
        query_vector: Sequence[float],
        workspace_id: str,
        space_id: str | None = None,
        limit: int = 8,
        model_name: str | None = None,
    ) -> list[NeighborRow]:
        """Return up to *limit* chunks ordered by ascending L2 distance.

        Only live chunks of live documents in *workspace_id* (and *space_id*
        when given) are considered.  When *model_name* is given, chunks
        embedded with a different model are ignored.
        """

    @abstractmethod
    async def chunk_counts_by_document(
        self,
        document_ids: Sequence[str],
        workspace_id: str,
    ) -> dict[str, int]:
        """Return the number of live chunks per document id.

        Documents with no chunks are absent from the result.
        """

    @abstractmethod
    async def count_chunks(self, workspace_id: str) -> int:
        """Return the number of live chunks in a workspace."""

    @abstractmethod
    async def count_indexed_documents(self, workspace_id: str) -> int:
        """Return how many live documents have at least one live chunk."""

    @abstractmethod
    async def recent_chunks(self, workspace_id: str, limit: int = 3) -> list[RecentChunk]:
        """Return the most recently written chunks, newest first."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"sqlite_embeddings"``."""
