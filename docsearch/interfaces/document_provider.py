"""Abstract base class for read access to the external document store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from docsearch.models.document import Document


class IDocumentProvider(ABC):
    """Read-only view of documents needed for indexing and status."""

    @abstractmethod
    async def get_documents(self, document_ids: Sequence[str], workspace_id: str) -> list[Document]:
        """Return the requested documents, including soft-deleted ones.

        Ids that do not exist in the workspace are silently skipped; the
        caller decides what to do with missing or deleted documents.
        """

    @abstractmethod
    async def list_document_ids(self, workspace_id: str) -> list[str]:
        """Return ids of every non-deleted document in the workspace."""

    @abstractmethod
    async def count_documents(self, workspace_id: str) -> int:
        """Return the number of non-deleted documents in the workspace."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"sqlite_documents"``."""
