"""Storage ports for the job layer. Adapters: adapters.memory, adapters.sql."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from cvextract.jobs.models import ErrorDescriptor, JobSnapshot


@runtime_checkable
class JobStorePort(Protocol):
    """Field-level atomic job updates.

    Every mutating call is a compare-and-set on status: it returns the
    updated snapshot, or None when the job was not in an allowed source
    status (already claimed, cancelled, terminal). Callers treat None as
    "someone else got there first", never as an error.
    """

    async def create(
        self,
        job_type: str,
        payload: dict[str, Any],
        *,
        max_attempts: int,
        related_entity_id: str | None = None,
    ) -> JobSnapshot:
        ...

    async def get(self, job_id: str) -> JobSnapshot | None:
        ...

    async def claim(self, job_id: str) -> JobSnapshot | None:
        """pending|retrying -> processing; attempts += 1; started_at = now; next_retry_at cleared."""
        ...

    async def update_progress(self, job_id: str, progress: int, step: str | None) -> JobSnapshot | None:
        """Only while processing."""
        ...

    async def complete(self, job_id: str, result: dict[str, Any]) -> JobSnapshot | None:
        ...

    async def fail(self, job_id: str, error: ErrorDescriptor) -> JobSnapshot | None:
        ...

    async def schedule_retry(
        self, job_id: str, error: ErrorDescriptor, next_retry_at: datetime
    ) -> JobSnapshot | None:
        ...

    async def cancel(self, job_id: str, reason: str | None = None) -> JobSnapshot | None:
        """Any non-terminal status -> cancelled."""
        ...

    async def list_ready(self, job_type: str, now: datetime, limit: int = 100) -> list[JobSnapshot]:
        ...


@runtime_checkable
class CvDocumentStorePort(Protocol):
    async def mark_processing(self, document_id: str) -> None:
        ...

    async def save_parsed(self, document_id: str, record: dict[str, Any], metadata: dict[str, Any]) -> None:
        ...

    async def mark_failed(self, document_id: str, error_code: str) -> None:
        ...
