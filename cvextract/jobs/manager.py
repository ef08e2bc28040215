"""Job lifecycle: claim, run, complete, retry with backoff, or fail terminally."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from cvextract.jobs.errors import HandlerNotRegistered, InvalidJobTransition, JobNotFound, JobResultInvalid
from cvextract.jobs.models import ErrorDescriptor, JobSnapshot, JobStatus
from cvextract.jobs.ports import JobStorePort
from cvextract.jobs.queue import JobQueue
from cvextract.jobs.settings import JobSettings
from cvextract.llm.telemetry import redact_preview
from cvextract.retry import RetryPolicy, error_code

if TYPE_CHECKING:
    from cvextract.jobs.handlers import JobHandler

logger = logging.getLogger(__name__)

JobWork = Callable[[JobSnapshot, "ProgressReporter"], Awaitable[dict[str, Any] | None]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProgressReporter:
    """Handed to job work: ``await reporter(percent, step)`` and ``await reporter.cancelled()``."""

    def __init__(self, manager: JobLifecycleManager, job_id: str) -> None:
        self._manager = manager
        self.job_id = job_id

    async def __call__(self, percent: int, step: str | None = None) -> None:
        await self._manager.update_progress(self.job_id, percent, step)

    async def cancelled(self) -> bool:
        return await self._manager.is_cancelled(self.job_id)


class JobLifecycleManager:
    """Sole writer of job state. Store calls are compare-and-set; losing a race is not an error."""

    def __init__(
        self,
        store: JobStorePort,
        queue: JobQueue | None = None,
        settings: JobSettings | None = None,
    ) -> None:
        self._store = store
        self._queue = queue
        self._settings = settings or JobSettings()
        self._handlers: dict[str, JobHandler] = {}

    @property
    def store(self) -> JobStorePort:
        return self._store

    @property
    def queue(self) -> JobQueue | None:
        return self._queue

    def register(self, handler: JobHandler) -> None:
        self._handlers[handler.job_type] = handler
        logger.debug("job handler registered", extra={"job_type": handler.job_type})

    def handler_for(self, job_type: str) -> JobHandler:
        handler = self._handlers.get(job_type)
        if handler is None:
            raise HandlerNotRegistered(f"No handler registered for job type {job_type!r}")
        return handler

    def _policy(self, max_attempts: int) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=max_attempts,
            base_delay_s=self._settings.retry_base_delay_s,
            max_delay_s=self._settings.retry_max_delay_s,
        )

    async def create_job(
        self,
        job_type: str,
        payload: dict[str, Any],
        *,
        max_attempts: int | None = None,
        related_entity_id: str | None = None,
    ) -> JobSnapshot:
        """Persist a pending job and enqueue it (when a queue is attached)."""
        job = await self._store.create(
            job_type,
            payload,
            max_attempts=max_attempts or self._settings.default_max_attempts,
            related_entity_id=related_entity_id,
        )
        logger.info("job_status", extra={"job_id": job.id, "job_type": job_type, "status": job.status.value})
        if self._queue is not None:
            self._queue.put(job_type, job.id)
        return job

    async def get(self, job_id: str) -> JobSnapshot:
        job = await self._store.get(job_id)
        if job is None:
            raise JobNotFound(f"Job {job_id} not found", job_id=job_id)
        return job

    async def update_progress(self, job_id: str, percent: int, step: str | None = None) -> JobSnapshot | None:
        """Advisory. Returns None (and changes nothing) unless the job is processing."""
        clamped = max(0, min(100, int(percent)))
        updated = await self._store.update_progress(job_id, clamped, step)
        if updated is None:
            logger.debug("progress ignored", extra={"job_id": job_id, "progress": clamped})
        return updated

    async def is_cancelled(self, job_id: str) -> bool:
        job = await self._store.get(job_id)
        return job is not None and job.status == JobStatus.CANCELLED

    async def cancel(self, job_id: str, reason: str | None = None) -> JobSnapshot:
        """Cooperative: running work is not interrupted, its result is discarded."""
        job = await self.get(job_id)
        cancelled = await self._store.cancel(job_id, reason)
        if cancelled is None:
            current = await self.get(job_id)
            raise InvalidJobTransition(current.status.value, JobStatus.CANCELLED.value, job_id=job_id)
        logger.info(
            "job_status",
            extra={"job_id": job_id, "job_type": job.job_type, "status": "cancelled", "from_status": job.status.value},
        )
        return cancelled

    async def process(self, job_id: str, work: JobWork | None = None) -> JobSnapshot:
        """Claim and run one job to a non-processing state; returns the resulting snapshot.

        Returns the current snapshot unchanged when the job is not claimable
        (another worker holds it, it was cancelled, or it is terminal).
        """
        job = await self.get(job_id)
        handler = None
        if work is None:
            handler = self.handler_for(job.job_type)
            work = handler.run
        else:
            handler = self._handlers.get(job.job_type)

        claimed = await self._store.claim(job_id)
        if claimed is None:
            current = await self.get(job_id)
            logger.info("job not claimable", extra={"job_id": job_id, "status": current.status.value})
            return current
        logger.info(
            "job_status",
            extra={
                "job_id": job_id,
                "job_type": claimed.job_type,
                "status": "processing",
                "attempt": claimed.attempts,
                "max_attempts": claimed.max_attempts,
            },
        )

        try:
            result = await work(claimed, ProgressReporter(self, job_id))
        except asyncio.CancelledError:
            await self._interrupted(claimed)
            raise
        except Exception as e:  # noqa: BLE001
            return await self._handle_failure(claimed, e, handler)

        try:
            completed = await self._store.complete(job_id, result or {})
        except (TypeError, ValueError) as e:
            invalid = JobResultInvalid(f"Job result could not be stored: {e}", job_id=job_id)
            return await self._handle_failure(claimed, invalid, handler)
        except Exception as e:  # noqa: BLE001
            return await self._handle_failure(claimed, e, handler)
        if completed is None:
            current = await self.get(job_id)
            logger.info("job result discarded", extra={"job_id": job_id, "status": current.status.value})
            return current
        logger.info(
            "job_status",
            extra={"job_id": job_id, "job_type": completed.job_type, "status": "completed", "attempt": completed.attempts},
        )
        return completed

    def describe_error(self, exc: BaseException, job: JobSnapshot, *, retryable: bool) -> ErrorDescriptor:
        """Stable code, bounded message, redacted preview. No traceback, no raw payload."""
        limit = self._settings.error_message_max_chars
        message = str(exc) or type(exc).__name__
        if len(message) > limit:
            message = message[:limit] + "..."
        details: dict[str, Any] = {
            "error_type": type(exc).__name__,
            "attempts": job.attempts,
            "max_attempts": job.max_attempts,
            "retryable": retryable,
        }
        preview = getattr(exc, "preview", None)
        extra = getattr(exc, "details", None)
        if isinstance(extra, dict):
            preview = preview or extra.get("preview")
            if isinstance(extra.get("chunks"), dict):
                details["chunks"] = dict(extra["chunks"])
        if preview:
            details["preview"] = redact_preview(str(preview), self._settings.preview_chars)
        return ErrorDescriptor(code=error_code(exc) or "UNKNOWN", message=message, details=details)

    async def _handle_failure(
        self, job: JobSnapshot, exc: Exception, handler: JobHandler | None
    ) -> JobSnapshot:
        decision = self._policy(job.max_attempts).decide(exc, job.attempts)
        try:
            error = self.describe_error(exc, job, retryable=decision.retryable)
        except Exception:  # noqa: BLE001
            logger.exception("Could not describe error for job %s", job.id)
            error = ErrorDescriptor(
                code=error_code(exc) or "UNKNOWN",
                message=type(exc).__name__,
                details={"attempts": job.attempts, "max_attempts": job.max_attempts},
            )

        if decision.should_retry:
            next_retry_at = _now() + timedelta(seconds=decision.delay_s)
            try:
                updated = await self._store.schedule_retry(job.id, error, next_retry_at)
            except Exception:  # noqa: BLE001
                logger.exception("Could not schedule retry for job %s; failing it", job.id)
                return await self._fail(job, error, decision.retryable, handler)
            if updated is None:
                return await self.get(job.id)
            logger.warning(
                "job_status",
                extra={
                    "job_id": job.id,
                    "job_type": job.job_type,
                    "status": "retrying",
                    "attempt": job.attempts,
                    "error_code": error.code,
                    "delay_s": decision.delay_s,
                },
            )
            if self._queue is not None:
                self._queue.put(job.job_type, job.id, decision.delay_s)
            return updated

        return await self._fail(job, error, decision.retryable, handler)

    async def _fail(
        self, job: JobSnapshot, error: ErrorDescriptor, retryable: bool, handler: JobHandler | None
    ) -> JobSnapshot:
        updated = await self._store.fail(job.id, error)
        if updated is None:
            return await self.get(job.id)
        logger.error(
            "job_status",
            extra={
                "job_id": job.id,
                "job_type": job.job_type,
                "status": "failed",
                "attempt": job.attempts,
                "error_code": error.code,
                "retryable": retryable,
            },
        )
        if handler is not None:
            try:
                await handler.on_final_failure(updated, error)
            except Exception:
                logger.exception("on_final_failure hook failed for job %s", job.id)
        return updated

    async def _interrupted(self, job: JobSnapshot) -> None:
        """Worker task cancelled mid-run: hand the job back instead of leaving it processing."""
        error = ErrorDescriptor(
            code="INTERRUPTED",
            message="Worker stopped while the job was running",
            details={"attempts": job.attempts, "max_attempts": job.max_attempts},
        )
        if job.attempts < job.max_attempts:
            await self._store.schedule_retry(job.id, error, _now())
        else:
            await self._store.fail(job.id, error)
        logger.warning("job interrupted", extra={"job_id": job.id, "attempt": job.attempts})
