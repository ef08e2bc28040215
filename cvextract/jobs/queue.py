"""In-process job queue: one asyncio.Queue of job ids per job type, with delayed enqueue."""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

logger = logging.getLogger(__name__)


class JobQueue:
    """Carries job ids only; the store stays the source of truth for job state."""

    def __init__(self) -> None:
        self._queues: dict[str, asyncio.Queue[str]] = defaultdict(asyncio.Queue)
        self._delayed: dict[str, set[asyncio.TimerHandle]] = defaultdict(set)
        self._unfinished: dict[str, int] = defaultdict(int)

    def put(self, job_type: str, job_id: str, delay_s: float = 0.0) -> None:
        """Enqueue now, or after delay_s seconds. Must be called from the running loop."""
        if delay_s <= 0:
            self._put_now(job_type, job_id)
            return
        loop = asyncio.get_running_loop()
        handles = self._delayed[job_type]

        def _release() -> None:
            handles.discard(handle)
            self._put_now(job_type, job_id)

        handle = loop.call_later(delay_s, _release)
        handles.add(handle)
        logger.debug("job enqueued with delay", extra={"job_id": job_id, "job_type": job_type, "delay_s": delay_s})

    def _put_now(self, job_type: str, job_id: str) -> None:
        self._unfinished[job_type] += 1
        self._queues[job_type].put_nowait(job_id)

    async def get(self, job_type: str) -> str:
        return await self._queues[job_type].get()

    def task_done(self, job_type: str) -> None:
        self._queues[job_type].task_done()
        self._unfinished[job_type] -= 1

    def pending_count(self, job_type: str) -> int:
        return self._queues[job_type].qsize()

    def delayed_count(self, job_type: str) -> int:
        return len(self._delayed[job_type])

    def is_idle(self, job_type: str) -> bool:
        return self._unfinished[job_type] == 0 and not self._delayed[job_type]

    async def wait_idle(self, job_type: str, poll_s: float = 0.01) -> None:
        """Until nothing is queued, in flight, or waiting on a delay for job_type."""
        while not self.is_idle(job_type):
            await asyncio.sleep(poll_s)

    def clear_delayed(self) -> None:
        for handles in self._delayed.values():
            for handle in handles:
                handle.cancel()
            handles.clear()
