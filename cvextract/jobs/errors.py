"""Job-layer exceptions. code matches the retry classifier's vocabulary."""
from __future__ import annotations


class JobError(Exception):
    code = "JOB_ERROR"

    def __init__(self, message: str, *, job_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.job_id = job_id


class JobNotFound(JobError):
    code = "NOT_FOUND"


class InvalidJobTransition(JobError):
    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, *, job_id: str | None = None) -> None:
        super().__init__(f"Invalid job transition: {from_status} -> {to_status}", job_id=job_id)
        self.from_status = from_status
        self.to_status = to_status


class HandlerNotRegistered(JobError):
    code = "CONFIGURATION_ERROR"


class JobResultInvalid(JobError):
    code = "RESULT_INVALID"
