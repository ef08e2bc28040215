"""Fixed-size worker pool: N tasks per job type, each running one job to completion at a time."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from cvextract.jobs.manager import JobLifecycleManager
from cvextract.jobs.queue import JobQueue

logger = logging.getLogger(__name__)


class WorkerPool:
    def __init__(
        self,
        manager: JobLifecycleManager,
        queue: JobQueue,
        job_type: str,
        concurrency: int = 2,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._manager = manager
        self._queue = queue
        self._job_type = job_type
        self._concurrency = concurrency
        self._tasks: list[asyncio.Task[None]] = []
        self.processed = 0

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def recover(self, limit: int = 1000) -> int:
        """Enqueue jobs the store says are ready (pending, or retrying and due). Returns the count."""
        ready = await self._manager.store.list_ready(self._job_type, datetime.now(timezone.utc), limit)
        for job in ready:
            self._queue.put(self._job_type, job.id)
        if ready:
            logger.info("recovered ready jobs", extra={"job_type": self._job_type, "count": len(ready)})
        return len(ready)

    async def start(self, *, recover: bool = True) -> None:
        if self.running:
            return
        if recover:
            await self.recover()
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"{self._job_type}-worker-{i}")
            for i in range(self._concurrency)
        ]
        logger.info("worker pool started", extra={"job_type": self._job_type, "concurrency": self._concurrency})

    async def _worker(self, index: int) -> None:
        while True:
            job_id = await self._queue.get(self._job_type)
            try:
                job = await self._manager.process(job_id)
                self.processed += 1
                logger.debug(
                    "worker finished job",
                    extra={"worker": index, "job_id": job_id, "status": job.status.value},
                )
            except Exception as e:
                logger.exception("Worker failed to process %s job %s: %s", self._job_type, job_id, e)
            finally:
                self._queue.task_done(self._job_type)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("worker pool stopped", extra={"job_type": self._job_type, "processed": self.processed})

    async def run_until_idle(self, *, recover: bool = True) -> int:
        """Start, drain everything including delayed retries, stop. Returns jobs processed."""
        await self.start(recover=recover)
        try:
            await self._queue.wait_idle(self._job_type)
        finally:
            await self.stop()
        return self.processed
