"""In-memory job store. For tests and single-process dev."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from cvextract.jobs.models import CLAIMABLE_STATUSES, ErrorDescriptor, JobSnapshot, JobStatus
from cvextract.jobs.state_machine import sources_for

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryJobStore:
    """Implements JobStorePort over a dict; one lock makes each update atomic."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobSnapshot] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        job_type: str,
        payload: dict[str, Any],
        *,
        max_attempts: int,
        related_entity_id: str | None = None,
    ) -> JobSnapshot:
        now = _now()
        job = JobSnapshot(
            id=str(uuid4()),
            job_type=job_type,
            payload=dict(payload),
            max_attempts=max_attempts,
            related_entity_id=related_entity_id,
            created_at=now,
            updated_at=now,
        )
        async with self._lock:
            self._jobs[job.id] = job
        return job

    async def get(self, job_id: str) -> JobSnapshot | None:
        return self._jobs.get(job_id)

    async def _transition(
        self, job_id: str, sources: frozenset[JobStatus], changes: dict[str, Any]
    ) -> JobSnapshot | None:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status not in sources:
                return None
            updated = job.model_copy(update={**changes, "version": job.version + 1, "updated_at": _now()})
            self._jobs[job_id] = updated
            return updated

    async def claim(self, job_id: str) -> JobSnapshot | None:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status not in CLAIMABLE_STATUSES:
                return None
            claimed = job.model_copy(
                update={
                    "status": JobStatus.PROCESSING,
                    "attempts": job.attempts + 1,
                    "started_at": _now(),
                    "next_retry_at": None,
                    "version": job.version + 1,
                    "updated_at": _now(),
                }
            )
            self._jobs[job_id] = claimed
            return claimed

    async def update_progress(self, job_id: str, progress: int, step: str | None) -> JobSnapshot | None:
        return await self._transition(
            job_id, frozenset({JobStatus.PROCESSING}), {"progress": progress, "current_step": step}
        )

    async def complete(self, job_id: str, result: dict[str, Any]) -> JobSnapshot | None:
        return await self._transition(
            job_id,
            sources_for(JobStatus.COMPLETED),
            {
                "status": JobStatus.COMPLETED,
                "result": result,
                "progress": 100,
                "error": None,
                "completed_at": _now(),
            },
        )

    async def fail(self, job_id: str, error: ErrorDescriptor) -> JobSnapshot | None:
        return await self._transition(
            job_id,
            sources_for(JobStatus.FAILED),
            {"status": JobStatus.FAILED, "error": error, "completed_at": _now()},
        )

    async def schedule_retry(
        self, job_id: str, error: ErrorDescriptor, next_retry_at: datetime
    ) -> JobSnapshot | None:
        return await self._transition(
            job_id,
            sources_for(JobStatus.RETRYING),
            {"status": JobStatus.RETRYING, "error": error, "next_retry_at": next_retry_at},
        )

    async def cancel(self, job_id: str, reason: str | None = None) -> JobSnapshot | None:
        error = ErrorDescriptor(code="CANCELLED", message=reason or "Job cancelled")
        return await self._transition(
            job_id,
            sources_for(JobStatus.CANCELLED),
            {"status": JobStatus.CANCELLED, "error": error, "completed_at": _now()},
        )

    async def list_ready(self, job_type: str, now: datetime, limit: int = 100) -> list[JobSnapshot]:
        ready = [
            j
            for j in self._jobs.values()
            if j.job_type == job_type
            and (
                j.status == JobStatus.PENDING
                or (j.status == JobStatus.RETRYING and (j.next_retry_at is None or j.next_retry_at <= now))
            )
        ]
        ready.sort(key=lambda j: j.created_at or now)
        return ready[:limit]
