"""docsearch: retrieval-augmented semantic search over a document store."""

__version__ = "0.1.0"
