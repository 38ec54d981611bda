"""Background indexing worker that drains the job queue."""
