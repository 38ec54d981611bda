"""Concrete adapters implementing the interfaces in ``docsearch.interfaces``."""
