"""Job repository. Bound to caller's session; does not commit."""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cvextract.db.base import utc_now
from cvextract.db.models.job import Job
from cvextract.db.utils import wrap_integrity_error


class JobRepo:
    """Persistence for jobs. Session-bound; caller commits.

    Every state change goes through guarded_update: a single UPDATE whose
    WHERE clause carries the allowed source statuses, so two writers cannot
    both win and a late write cannot resurrect a terminal job.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @wrap_integrity_error
    async def create(
        self,
        job_type: str,
        *,
        payload_json: str | None,
        max_attempts: int,
        related_entity_id: str | None = None,
    ) -> Job:
        row = Job(
            job_type=job_type,
            status="pending",
            progress=0,
            attempts=0,
            max_attempts=max_attempts,
            payload_json=payload_json,
            related_entity_id=related_entity_id,
            version=0,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, job_id: str) -> Job | None:
        return (
            await self._session.execute(
                select(Job).where(Job.id == job_id).execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()

    async def guarded_update(
        self,
        job_id: str,
        sources: Iterable[str],
        values: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> bool:
        """Apply values iff the job's status is in sources (and version matches). True when one row changed."""
        stmt = update(Job).where(Job.id == job_id, Job.status.in_(list(sources)))
        if expected_version is not None:
            stmt = stmt.where(Job.version == expected_version)
        stmt = stmt.values(**values, version=Job.version + 1, updated_at=utc_now()).execution_options(
            synchronize_session=False
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def claim(self, job_id: str, sources: Iterable[str], now: datetime) -> bool:
        return await self.guarded_update(
            job_id,
            sources,
            {
                "status": "processing",
                "attempts": Job.attempts + 1,
                "started_at": now,
                "next_retry_at": None,
            },
        )

    async def list_ready(self, job_type: str, now: datetime, limit: int = 100) -> list[Job]:
        """Pending jobs, plus retrying jobs whose next_retry_at has passed, oldest first."""
        stmt = (
            select(Job)
            .where(
                Job.job_type == job_type,
                or_(
                    Job.status == "pending",
                    (Job.status == "retrying") & (or_(Job.next_retry_at.is_(None), Job.next_retry_at <= now)),
                ),
            )
            .order_by(Job.created_at, Job.id)
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_by_status(self, status: str, job_type: str | None = None) -> list[Job]:
        stmt = select(Job).where(Job.status == status)
        if job_type is not None:
            stmt = stmt.where(Job.job_type == job_type)
        return list((await self._session.execute(stmt.order_by(Job.created_at))).scalars().all())
