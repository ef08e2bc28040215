"""Job lifecycle: state machine, manager, queue, worker pool, handlers, stores."""
from cvextract.jobs.errors import (
    HandlerNotRegistered,
    InvalidJobTransition,
    JobError,
    JobNotFound,
    JobResultInvalid,
)
from cvextract.jobs.manager import JobLifecycleManager, ProgressReporter
from cvextract.jobs.models import CV_PARSING, ErrorDescriptor, JobSnapshot, JobStatus, TERMINAL_STATUSES
from cvextract.jobs.queue import JobQueue
from cvextract.jobs.settings import JobSettings
from cvextract.jobs.worker import WorkerPool

__all__ = [
    "CV_PARSING",
    "ErrorDescriptor",
    "HandlerNotRegistered",
    "InvalidJobTransition",
    "JobError",
    "JobLifecycleManager",
    "JobNotFound",
    "JobResultInvalid",
    "JobQueue",
    "JobSettings",
    "JobSnapshot",
    "JobStatus",
    "ProgressReporter",
    "TERMINAL_STATUSES",
    "WorkerPool",
]
