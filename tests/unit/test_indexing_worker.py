"""Unit tests for the background indexing worker."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from docsearch.interfaces.job_queue import JobRecord
from docsearch.models.jobs import WorkspaceCreateJob
from docsearch.pipeline.indexing_worker import IndexingWorker
from docsearch.providers.queue.memory_job_queue import MemoryJobQueue
from docsearch.utils.errors import SchemaMissingError, TransientProviderError


def _record() -> JobRecord:
    return JobRecord(job_id="job-1", job=WorkspaceCreateJob(workspace_id="ws1"), attempts=1)


def _queue() -> MagicMock:
    queue = MagicMock()
    queue.complete = AsyncMock()
    queue.fail = AsyncMock()
    return queue


class TestRunOne:
    @pytest.mark.asyncio
    async def test_success_completes_job(self) -> None:
        queue = _queue()
        consumer = MagicMock()
        consumer.process = AsyncMock()
        worker = IndexingWorker(queue, consumer)
        record = _record()

        assert await worker.run_one(record) is True

        consumer.process.assert_awaited_once_with(record.job)
        queue.complete.assert_awaited_once_with(record)
        queue.fail.assert_not_called()

    @pytest.mark.asyncio
    async def test_transient_failure_is_retryable(self) -> None:
        queue = _queue()
        consumer = MagicMock()
        error = TransientProviderError("timeout")
        consumer.process = AsyncMock(side_effect=error)
        worker = IndexingWorker(queue, consumer)
        record = _record()

        assert await worker.run_one(record) is False

        queue.fail.assert_awaited_once_with(record, error, retryable=True)
        queue.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_schema_is_fatal(self) -> None:
        queue = _queue()
        consumer = MagicMock()
        error = SchemaMissingError()
        consumer.process = AsyncMock(side_effect=error)
        worker = IndexingWorker(queue, consumer)
        record = _record()

        await worker.run_one(record)

        queue.fail.assert_awaited_once_with(record, error, retryable=False)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_drains_queue_until_stopped(self) -> None:
        queue = MemoryJobQueue(backoff_seconds=0.0)
        consumer = MagicMock()
        consumer.process = AsyncMock()
        worker = IndexingWorker(queue, consumer, concurrency=2)

        worker.start()
        assert worker.running is True
        for ws in ("ws1", "ws2", "ws3"):
            await queue.enqueue(WorkspaceCreateJob(workspace_id=ws))

        for _ in range(200):
            if (await queue.get_job_counts())["completed"] == 3:
                break
            await asyncio.sleep(0.01)

        await worker.stop()

        assert worker.running is False
        assert (await queue.get_job_counts())["completed"] == 3
        processed = {c.args[0].workspace_id for c in consumer.process.await_args_list}
        assert processed == {"ws1", "ws2", "ws3"}

    @pytest.mark.asyncio
    async def test_stop_without_start(self) -> None:
        worker = IndexingWorker(MemoryJobQueue(), MagicMock())
        await worker.stop()
        assert worker.running is False
