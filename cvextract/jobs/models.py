"""Job DTOs shared by the manager, the stores and the CLI."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

CV_PARSING = "cv_parsing"


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    RETRYING = "retrying"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})
CLAIMABLE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.RETRYING})


class ErrorDescriptor(BaseModel):
    """Stable failure summary. Holds no stack traces or raw provider payloads."""

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class JobSnapshot(BaseModel):
    """Point-in-time copy of a job row. Mutations go through the store."""

    id: str
    job_type: str
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str | None = None
    attempts: int = 0
    max_attempts: int = 3
    payload: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] | None = None
    error: ErrorDescriptor | None = None
    related_entity_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    next_retry_at: datetime | None = None
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts)
