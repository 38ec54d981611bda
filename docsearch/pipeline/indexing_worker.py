"""Background worker that drains the indexing queue.

``concurrency`` asyncio tasks each loop: take one job, run it through the
:class:`IndexingConsumer`, report the outcome back to the queue.  Jobs for
different documents may run concurrently and in any order; the consumer's
per-document lock serialises work on the same document.
"""

from __future__ import annotations

import asyncio
import time

import structlog

from docsearch.interfaces.job_queue import IJobQueue, JobRecord
from docsearch.services.indexing_consumer import IndexingConsumer, is_retryable
from docsearch.utils.logging import get_logger, job_context

logger: structlog.BoundLogger = get_logger(__name__)


class IndexingWorker:
    """Runs indexing jobs from *queue* until stopped.

    Parameters
    ----------
    queue:
        Source of jobs and sink for their outcomes.
    consumer:
        Applies each job to the embedding store.
    concurrency:
        Number of jobs processed at the same time.
    """

    def __init__(self, queue: IJobQueue, consumer: IndexingConsumer, concurrency: int = 2) -> None:
        self._queue = queue
        self._consumer = consumer
        self._concurrency = max(1, concurrency)
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._run(slot), name=f"indexing-worker-{slot}")
            for slot in range(self._concurrency)
        ]
        logger.info("indexing_worker_started", concurrency=self._concurrency)

    async def stop(self) -> None:
        """Cancel the worker tasks and wait for them to exit."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("indexing_worker_stopped")

    async def _run(self, slot: int) -> None:
        while True:
            record = await self._queue.next_job()
            await self.run_one(record, slot)

    async def run_one(self, record: JobRecord, slot: int = 0) -> bool:
        """Process one delivered job.  Returns ``True`` on success."""
        job = record.job
        with job_context(record.job_id, job.kind, job.workspace_id):
            start = time.perf_counter()
            logger.info("indexing_job_started", attempt=record.attempts, slot=slot)
            try:
                await self._consumer.process(job)
            except asyncio.CancelledError:
                await self._queue.fail(record, RuntimeError("worker stopped"), retryable=True)
                raise
            except Exception as exc:
                retryable = is_retryable(exc)
                logger.error(
                    "indexing_job_error",
                    error_type=type(exc).__name__,
                    error=str(exc),
                    retryable=retryable,
                )
                await self._queue.fail(record, exc, retryable=retryable)
                return False

            await self._queue.complete(record)
            logger.info(
                "indexing_job_finished",
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return True
