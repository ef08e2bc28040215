"""Allowed job status transitions."""
from __future__ import annotations

from cvextract.jobs.errors import InvalidJobTransition
from cvextract.jobs.models import JobStatus

_ALLOWED: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING, JobStatus.CANCELLED}),
    JobStatus.PROCESSING: frozenset(
        {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED, JobStatus.RETRYING}
    ),
    JobStatus.RETRYING: frozenset({JobStatus.PROCESSING, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


def can_transition(from_status: JobStatus | str, to_status: JobStatus | str) -> bool:
    return JobStatus(to_status) in _ALLOWED[JobStatus(from_status)]


def ensure_transition_allowed(
    from_status: JobStatus | str, to_status: JobStatus | str, *, job_id: str | None = None
) -> None:
    if not can_transition(from_status, to_status):
        raise InvalidJobTransition(JobStatus(from_status).value, JobStatus(to_status).value, job_id=job_id)


def sources_for(to_status: JobStatus | str) -> frozenset[JobStatus]:
    """Statuses from which to_status is reachable; used as the compare-and-set guard."""
    target = JobStatus(to_status)
    return frozenset(src for src, targets in _ALLOWED.items() if target in targets)
