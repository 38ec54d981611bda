"""In-process job queue built on ``asyncio.Queue``.

Tracks the same five states a broker-backed queue would report:

    waiting    -- enqueued, not yet picked up
    active     -- handed to a worker, outcome not reported yet
    delayed    -- failed, sleeping through backoff before re-delivery
    completed  -- finished successfully
    failed     -- attempts exhausted, or failed with a fatal error

Backoff is exponential: ``backoff_seconds * 2 ** (attempts - 1)``.
"""

from __future__ import annotations

import asyncio
import uuid

import structlog

from docsearch.interfaces.job_queue import IJobQueue, JobRecord
from docsearch.models.jobs import IndexingJob

logger = structlog.get_logger(logger_name=__name__)


class MemoryJobQueue(IJobQueue):
    """Single-process indexing queue with retry and backoff.

    Parameters
    ----------
    max_attempts:
        Total deliveries allowed per job before it is marked failed.
    backoff_seconds:
        Base delay before the first re-delivery.
    """

    def __init__(self, max_attempts: int = 3, backoff_seconds: float = 2.0) -> None:
        self._queue: asyncio.Queue[JobRecord] = asyncio.Queue()
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = backoff_seconds
        self._active: dict[str, JobRecord] = {}
        self._delayed: dict[str, asyncio.Task[None]] = {}
        self._completed = 0
        self._failed = 0

    async def enqueue(self, job: IndexingJob) -> str:
        record = JobRecord(job_id=str(uuid.uuid4()), job=job)
        await self._queue.put(record)
        logger.info("job_enqueued", job_id=record.job_id, kind=job.kind)
        return record.job_id

    async def next_job(self) -> JobRecord:
        record = await self._queue.get()
        self._queue.task_done()
        record.attempts += 1
        self._active[record.job_id] = record
        return record

    async def complete(self, record: JobRecord) -> None:
        self._active.pop(record.job_id, None)
        self._completed += 1

    async def fail(self, record: JobRecord, error: BaseException, retryable: bool = True) -> None:
        self._active.pop(record.job_id, None)
        record.last_error = str(error)

        if not retryable or record.attempts >= self._max_attempts:
            self._failed += 1
            logger.error(
                "job_failed",
                job_id=record.job_id,
                kind=record.job.kind,
                attempts=record.attempts,
                retryable=retryable,
                error=record.last_error,
            )
            return

        delay = self._backoff_seconds * (2 ** (record.attempts - 1))
        logger.warning(
            "job_retry_scheduled",
            job_id=record.job_id,
            kind=record.job.kind,
            attempts=record.attempts,
            delay_seconds=delay,
            error=record.last_error,
        )
        self._delayed[record.job_id] = asyncio.create_task(self._redeliver(record, delay))

    async def _redeliver(self, record: JobRecord, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
            await self._queue.put(record)
        finally:
            self._delayed.pop(record.job_id, None)

    async def get_job_counts(self) -> dict[str, int]:
        return {
            "waiting": self._queue.qsize(),
            "active": len(self._active),
            "completed": self._completed,
            "failed": self._failed,
            "delayed": len(self._delayed),
        }

    async def close(self) -> None:
        """Cancel pending re-deliveries.  Waiting jobs are dropped."""
        tasks = list(self._delayed.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._delayed.clear()

    def get_provider_name(self) -> str:
        return "memory_queue"
