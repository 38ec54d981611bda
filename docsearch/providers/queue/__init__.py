"""Job queue implementations.

MemoryJobQueue keeps jobs in-process on an ``asyncio.Queue``.  Jobs do not
survive a restart; a durable broker can be plugged in through IJobQueue.
"""

from docsearch.providers.queue.memory_job_queue import MemoryJobQueue

__all__ = ["MemoryJobQueue"]
