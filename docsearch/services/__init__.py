"""Business logic: chunking, indexing, retrieval, answering, status."""
