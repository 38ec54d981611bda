"""Abstract base class for the indexing job queue.

The queue owns delivery and failure policy: the worker takes one job,
runs it, and reports the outcome.  Retryable failures are re-delivered
after a backoff until the attempt budget is spent; fatal failures go
straight to ``failed``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone

from docsearch.models.jobs import IndexingJob


@dataclass
class JobRecord:
    """A job plus its delivery bookkeeping."""

    job_id: str
    job: IndexingJob
    attempts: int = 0
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    last_error: str | None = None


class IJobQueue(ABC):
    """Contract for enqueueing and consuming indexing jobs."""

    @abstractmethod
    async def enqueue(self, job: IndexingJob) -> str:
        """Add *job* to the queue and return its job id."""

    @abstractmethod
    async def next_job(self) -> JobRecord:
        """Wait for the next job and mark it active."""

    @abstractmethod
    async def complete(self, record: JobRecord) -> None:
        """Mark an active job as completed."""

    @abstractmethod
    async def fail(self, record: JobRecord, error: BaseException, retryable: bool = True) -> None:
        """Mark an active job as failed, re-delivering it later if allowed."""

    @abstractmethod
    async def get_job_counts(self) -> dict[str, int]:
        """Return counts keyed by ``waiting``, ``active``, ``completed``,
        ``failed`` and ``delayed``."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"memory_queue"``."""
