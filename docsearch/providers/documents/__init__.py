"""Document provider implementations."""

from docsearch.providers.documents.sqlite_document_provider import SQLiteDocumentProvider

__all__ = ["SQLiteDocumentProvider"]
