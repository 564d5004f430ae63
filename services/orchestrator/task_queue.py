"""
Bounded in-process queue for post-commit side effects.

Each job is a zero-argument coroutine factory so a retry builds a fresh
coroutine. Failed jobs are re-queued after an exponential backoff
(base_delay * 2 ** (attempt - 1)) until max_attempts, then dropped and logged.
Workers start lazily on the first enqueue so the queue binds to the running loop.
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog

from shared.config.settings import (
    TASK_MAX_ATTEMPTS,
    TASK_QUEUE_MAXSIZE,
    TASK_QUEUE_WORKERS,
    TASK_RETRY_BASE_DELAY,
)
from shared.observability import ecomm_fanout_task_total

logger = structlog.get_logger(__name__)

JobFactory = Callable[[], Awaitable[object]]


@dataclass
class Job:
    name: str
    factory: JobFactory
    attempt: int = 1


class BackgroundTaskQueue:
    def __init__(
        self,
        maxsize: int = TASK_QUEUE_MAXSIZE,
        workers: int = TASK_QUEUE_WORKERS,
        max_attempts: int = TASK_MAX_ATTEMPTS,
        base_delay: float = TASK_RETRY_BASE_DELAY,
    ):
        self.maxsize = maxsize
        self.worker_count = workers
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._queue: asyncio.Queue | None = None
        self._workers: list[asyncio.Task] = []
        self._retrying: set[asyncio.Task] = set()

    def _ensure_started(self):
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self.maxsize)
        if not self._workers:
            self._workers = [asyncio.create_task(self._worker(i)) for i in range(self.worker_count)]

    def enqueue(self, name: str, factory: JobFactory) -> bool:
        """Schedules a job. Returns False when the queue is full and the job was dropped."""
        self._ensure_started()
        try:
            self._queue.put_nowait(Job(name, factory))
        except asyncio.QueueFull:
            logger.error("Task queue full, dropping job", task=name, maxsize=self.maxsize)
            ecomm_fanout_task_total.labels(task=name, outcome="dropped").inc()
            return False
        return True

    async def _worker(self, index: int):
        # workers start inside whichever request enqueued first; drop its log context
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(worker=index)
        while True:
            job = await self._queue.get()
            try:
                await self._run(job)
            finally:
                self._queue.task_done()

    async def _run(self, job: Job):
        try:
            await job.factory()
        except Exception as e:
            if job.attempt >= self.max_attempts:
                logger.error("Background task failed, giving up", task=job.name, attempts=job.attempt, error=str(e))
                ecomm_fanout_task_total.labels(task=job.name, outcome="dropped").inc()
                return
            delay = self.base_delay * 2 ** (job.attempt - 1)
            logger.warning("Background task failed, retrying", task=job.name, attempt=job.attempt, delay=delay, error=str(e))
            ecomm_fanout_task_total.labels(task=job.name, outcome="retry").inc()
            retry = asyncio.create_task(self._requeue(Job(job.name, job.factory, job.attempt + 1), delay))
            self._retrying.add(retry)
            retry.add_done_callback(self._retrying.discard)
            return
        ecomm_fanout_task_total.labels(task=job.name, outcome="success").inc()

    async def _requeue(self, job: Job, delay: float):
        await asyncio.sleep(delay)
        await self._queue.put(job)

    async def join(self):
        """Waits until every job, including scheduled retries, has finished."""
        if self._queue is None:
            return
        while True:
            await self._queue.join()
            if not self._retrying:
                return
            await asyncio.wait(set(self._retrying))

    async def stop(self):
        await self.join()
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
