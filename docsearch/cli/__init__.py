"""Command-line tools for schema setup, reindexing and ad-hoc queries."""
