"""SQLAlchemy-backed job and CV document stores (async sessions over aiosqlite)."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from cvextract.db.base import as_utc, utc_now
from cvextract.db.models.job import Job
from cvextract.db.repositories.cv_document_repo import CvDocumentRepo
from cvextract.db.repositories.job_repo import JobRepo
from cvextract.db.session import async_session_scope
from cvextract.db.utils import json_deserialize, json_serialize
from cvextract.jobs.models import CLAIMABLE_STATUSES, ErrorDescriptor, JobSnapshot, JobStatus
from cvextract.jobs.state_machine import sources_for

logger = logging.getLogger(__name__)


def _statuses(values: Iterable[JobStatus]) -> list[str]:
    return [JobStatus(v).value for v in values]


def job_to_snapshot(row: Job) -> JobSnapshot:
    error = None
    if row.error_code:
        error = ErrorDescriptor(
            code=row.error_code,
            message=row.error_message or "",
            details=json_deserialize(row.error_details_json) or {},
        )
    return JobSnapshot(
        id=row.id,
        job_type=row.job_type,
        status=JobStatus(row.status),
        progress=row.progress,
        current_step=row.current_step,
        attempts=row.attempts,
        max_attempts=row.max_attempts,
        payload=json_deserialize(row.payload_json) or {},
        result=json_deserialize(row.result_json),
        error=error,
        related_entity_id=row.related_entity_id,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        started_at=as_utc(row.started_at),
        completed_at=as_utc(row.completed_at),
        next_retry_at=as_utc(row.next_retry_at),
        version=row.version,
    )


def _error_values(error: ErrorDescriptor | None) -> dict[str, Any]:
    if error is None:
        return {"error_code": None, "error_message": None, "error_details_json": None}
    return {
        "error_code": error.code,
        "error_message": error.message,
        "error_details_json": json_serialize(error.details),
    }


class SqlJobStore:
    """JobStorePort over the jobs table. One short transaction per call."""

    async def create(
        self,
        job_type: str,
        payload: dict[str, Any],
        *,
        max_attempts: int,
        related_entity_id: str | None = None,
    ) -> JobSnapshot:
        async with async_session_scope() as session:
            row = await JobRepo(session).create(
                job_type,
                payload_json=json_serialize(payload),
                max_attempts=max_attempts,
                related_entity_id=related_entity_id,
            )
            return job_to_snapshot(row)

    async def get(self, job_id: str) -> JobSnapshot | None:
        async with async_session_scope() as session:
            row = await JobRepo(session).get(job_id)
            return job_to_snapshot(row) if row is not None else None

    async def _guarded(
        self, job_id: str, sources: Iterable[JobStatus], values: dict[str, Any]
    ) -> JobSnapshot | None:
        async with async_session_scope() as session:
            repo = JobRepo(session)
            if not await repo.guarded_update(job_id, _statuses(sources), values):
                return None
            row = await repo.get(job_id)
            return job_to_snapshot(row) if row is not None else None

    async def claim(self, job_id: str) -> JobSnapshot | None:
        async with async_session_scope() as session:
            repo = JobRepo(session)
            if not await repo.claim(job_id, _statuses(CLAIMABLE_STATUSES), utc_now()):
                return None
            row = await repo.get(job_id)
            return job_to_snapshot(row) if row is not None else None

    async def update_progress(self, job_id: str, progress: int, step: str | None) -> JobSnapshot | None:
        return await self._guarded(
            job_id, [JobStatus.PROCESSING], {"progress": progress, "current_step": step}
        )

    async def complete(self, job_id: str, result: dict[str, Any]) -> JobSnapshot | None:
        return await self._guarded(
            job_id,
            sources_for(JobStatus.COMPLETED),
            {
                "status": JobStatus.COMPLETED.value,
                "result_json": json_serialize(result),
                "progress": 100,
                "completed_at": utc_now(),
                **_error_values(None),
            },
        )

    async def fail(self, job_id: str, error: ErrorDescriptor) -> JobSnapshot | None:
        return await self._guarded(
            job_id,
            sources_for(JobStatus.FAILED),
            {"status": JobStatus.FAILED.value, "completed_at": utc_now(), **_error_values(error)},
        )

    async def schedule_retry(
        self, job_id: str, error: ErrorDescriptor, next_retry_at: datetime
    ) -> JobSnapshot | None:
        return await self._guarded(
            job_id,
            sources_for(JobStatus.RETRYING),
            {"status": JobStatus.RETRYING.value, "next_retry_at": next_retry_at, **_error_values(error)},
        )

    async def cancel(self, job_id: str, reason: str | None = None) -> JobSnapshot | None:
        error = ErrorDescriptor(code="CANCELLED", message=reason or "Job cancelled")
        return await self._guarded(
            job_id,
            sources_for(JobStatus.CANCELLED),
            {"status": JobStatus.CANCELLED.value, "completed_at": utc_now(), **_error_values(error)},
        )

    async def list_ready(self, job_type: str, now: datetime, limit: int = 100) -> list[JobSnapshot]:
        async with async_session_scope() as session:
            rows = await JobRepo(session).list_ready(job_type, now, limit)
            return [job_to_snapshot(r) for r in rows]


class SqlCvDocumentStore:
    """CvDocumentStorePort over the cv_documents table."""

    async def create(self, source_name: str) -> str:
        async with async_session_scope() as session:
            row = await CvDocumentRepo(session).create(source_name)
            return row.id

    async def mark_processing(self, document_id: str) -> None:
        async with async_session_scope() as session:
            await CvDocumentRepo(session).set_status(document_id, "processing")

    async def save_parsed(self, document_id: str, record: dict[str, Any], metadata: dict[str, Any]) -> None:
        async with async_session_scope() as session:
            await CvDocumentRepo(session).save_parsed(
                document_id, json_serialize(record), json_serialize(metadata)
            )

    async def mark_failed(self, document_id: str, error_code: str) -> None:
        async with async_session_scope() as session:
            await CvDocumentRepo(session).set_status(document_id, "failed", error_code=error_code)
        logger.info("cv document marked failed", extra={"document_id": document_id, "error_code": error_code})
