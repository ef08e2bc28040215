"""JobLifecycleManager over the in-memory store."""
import asyncio

import pytest

from cvextract.extraction.errors import ChunkBatchFailed, ExtractionValidationError
from cvextract.jobs.adapters.memory import InMemoryJobStore
from cvextract.jobs.errors import HandlerNotRegistered, InvalidJobTransition, JobNotFound
from cvextract.jobs.manager import JobLifecycleManager
from cvextract.jobs.models import JobStatus
from cvextract.jobs.queue import JobQueue
from cvextract.jobs.settings import JobSettings
from cvextract.llm.errors import LLMResponseInvalid, LLMTimeout


def _settings(**overrides) -> JobSettings:
    values = {"default_max_attempts": 3, "retry_base_delay_s": 0.0, "retry_max_delay_s": None}
    values.update(overrides)
    return JobSettings(**values)


def _manager(queue=None, **overrides) -> JobLifecycleManager:
    return JobLifecycleManager(InMemoryJobStore(), queue, _settings(**overrides))


class RecordingHandler:
    job_type = "demo"

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.final_failures = []

    async def run(self, job, reporter):
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else {"ok": True}
        if isinstance(outcome, BaseException):
            raise outcome
        await reporter(50, "halfway")
        return outcome

    async def on_final_failure(self, job, error):
        self.final_failures.append((job.id, error.code))


@pytest.mark.asyncio
async def test_create_job_is_pending_and_enqueued():
    queue = JobQueue()
    manager = _manager(queue)
    job = await manager.create_job("demo", {"x": 1}, related_entity_id="doc-1")
    assert job.status == JobStatus.PENDING
    assert job.attempts == 0
    assert job.max_attempts == 3
    assert job.related_entity_id == "doc-1"
    assert await queue.get("demo") == job.id


@pytest.mark.asyncio
async def test_process_success_completes_with_result():
    manager = _manager()
    handler = RecordingHandler([{"answer": 42}])
    manager.register(handler)
    job = await manager.create_job("demo", {})

    done = await manager.process(job.id)

    assert done.status == JobStatus.COMPLETED
    assert done.result == {"answer": 42}
    assert done.progress == 100
    assert done.attempts == 1
    assert done.started_at is not None and done.completed_at is not None


@pytest.mark.asyncio
async def test_retryable_failure_moves_to_retrying_with_backoff():
    manager = _manager(retry_base_delay_s=2.0)
    manager.register(RecordingHandler([LLMTimeout()]))
    job = await manager.create_job("demo", {})

    after = await manager.process(job.id)

    assert after.status == JobStatus.RETRYING
    assert after.error.code == "TIMEOUT"
    assert after.error.details["retryable"] is True
    assert after.error.details["attempts"] == 1
    delay = (after.next_retry_at - after.updated_at).total_seconds()
    assert 1.5 <= delay <= 2.5


@pytest.mark.asyncio
async def test_retries_are_bounded_by_max_attempts():
    manager = _manager()
    handler = RecordingHandler([LLMTimeout(), LLMTimeout(), LLMTimeout(), {"late": True}])
    manager.register(handler)
    job = await manager.create_job("demo", {}, max_attempts=3)

    for _ in range(5):
        current = await manager.process(job.id)
        if current.is_terminal:
            break

    assert current.status == JobStatus.FAILED
    assert handler.calls == 3
    assert current.attempts == 3
    assert current.error.code == "TIMEOUT"
    assert handler.final_failures == [(job.id, "TIMEOUT")]
    # A terminal job is never claimed again.
    again = await manager.process(job.id)
    assert again.status == JobStatus.FAILED
    assert handler.calls == 3


@pytest.mark.asyncio
async def test_non_retryable_failure_fails_on_first_attempt():
    manager = _manager()
    handler = RecordingHandler([ExtractionValidationError("CV text content is required")])
    manager.register(handler)
    job = await manager.create_job("demo", {})

    after = await manager.process(job.id)

    assert after.status == JobStatus.FAILED
    assert after.error.code == "VALIDATION_ERROR"
    assert after.error.details["retryable"] is False
    assert after.error.details["error_type"] == "ExtractionValidationError"
    assert handler.final_failures == [(job.id, "VALIDATION_ERROR")]


@pytest.mark.asyncio
async def test_error_descriptor_preview_is_bounded_and_redacted():
    manager = _manager(preview_chars=40)
    raw = "contact ada@example.com " + "x" * 400
    error = LLMResponseInvalid("Could not parse JSON", preview=raw)
    manager.register(RecordingHandler([error]))
    job = await manager.create_job("demo", {}, max_attempts=1)

    after = await manager.process(job.id)

    preview = after.error.details["preview"]
    assert "ada@example.com" not in preview
    assert "[EMAIL]" in preview
    assert len(preview) <= 43
    assert "Traceback" not in after.error.message


@pytest.mark.asyncio
async def test_chunk_batch_failure_keeps_first_chunk_code_and_chunk_map():
    manager = _manager()
    error = ChunkBatchFailed(
        "All chunks failed",
        code="RESPONSE_INVALID",
        details={"chunks": {"chunk_profile": "RESPONSE_INVALID"}, "preview": "not json"},
    )
    manager.register(RecordingHandler([error]))
    job = await manager.create_job("demo", {}, max_attempts=2)

    after = await manager.process(job.id)

    assert after.status == JobStatus.RETRYING
    assert after.error.code == "RESPONSE_INVALID"
    assert after.error.details["chunks"] == {"chunk_profile": "RESPONSE_INVALID"}
    assert after.error.details["preview"] == "not json"


@pytest.mark.asyncio
async def test_cancel_while_running_discards_result():
    manager = _manager()
    started = asyncio.Event()
    release = asyncio.Event()

    async def work(job, reporter):
        started.set()
        await release.wait()
        await reporter(90, "almost")
        return {"discarded": True}

    job = await manager.create_job("demo", {})
    task = asyncio.create_task(manager.process(job.id, work))
    await started.wait()
    cancelled = await manager.cancel(job.id, "user request")
    release.set()
    final = await task

    assert cancelled.status == JobStatus.CANCELLED
    assert final.status == JobStatus.CANCELLED
    assert final.result is None
    assert final.progress == 0
    assert final.error.message == "user request"


@pytest.mark.asyncio
async def test_cancel_terminal_job_is_invalid_transition():
    manager = _manager()
    manager.register(RecordingHandler([{}]))
    job = await manager.create_job("demo", {})
    await manager.process(job.id)
    with pytest.raises(InvalidJobTransition):
        await manager.cancel(job.id)


@pytest.mark.asyncio
async def test_progress_is_clamped_and_ignored_outside_processing():
    manager = _manager()
    seen = []

    async def work(job, reporter):
        await reporter(250, "over")
        seen.append((await manager.get(job.id)).progress)
        await reporter(-5, "under")
        seen.append((await manager.get(job.id)).progress)
        return {}

    job = await manager.create_job("demo", {})
    assert await manager.update_progress(job.id, 30, "not yet running") is None
    await manager.process(job.id, work)
    assert seen == [100, 0]
    assert await manager.update_progress(job.id, 10, "late") is None
    assert (await manager.get(job.id)).progress == 100


@pytest.mark.asyncio
async def test_unknown_job_and_missing_handler():
    manager = _manager()
    with pytest.raises(JobNotFound):
        await manager.get("nope")
    job = await manager.create_job("unregistered", {})
    with pytest.raises(HandlerNotRegistered):
        await manager.process(job.id)
    assert (await manager.get(job.id)).status == JobStatus.PENDING


@pytest.mark.asyncio
async def test_final_failure_hook_error_does_not_mask_failure():
    manager = _manager()

    class BrokenHook(RecordingHandler):
        async def on_final_failure(self, job, error):
            raise RuntimeError("hook exploded")

    manager.register(BrokenHook([ExtractionValidationError("bad input")]))
    job = await manager.create_job("demo", {})
    after = await manager.process(job.id)
    assert after.status == JobStatus.FAILED


@pytest.mark.asyncio
async def test_worker_cancellation_hands_job_back():
    manager = _manager()
    started = asyncio.Event()

    async def work(job, reporter):
        started.set()
        await asyncio.sleep(10)
        return {}

    job = await manager.create_job("demo", {})
    task = asyncio.create_task(manager.process(job.id, work))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    after = await manager.get(job.id)
    assert after.status == JobStatus.RETRYING
    assert after.error.code == "INTERRUPTED"


class UnstorableResultStore(InMemoryJobStore):
    async def complete(self, job_id, result):
        raise TypeError("Object of type set is not JSON serializable")


class BrokenRetryStore(InMemoryJobStore):
    async def schedule_retry(self, job_id, error, next_retry_at):
        raise RuntimeError("database is locked")


@pytest.mark.asyncio
async def test_result_that_cannot_be_stored_fails_the_job():
    manager = JobLifecycleManager(UnstorableResultStore(), None, _settings())
    handler = RecordingHandler([{"tags": {"a", "b"}}])
    manager.register(handler)
    job = await manager.create_job("demo", {})

    after = await manager.process(job.id)

    assert after.status == JobStatus.FAILED
    assert after.error.code == "RESULT_INVALID"
    assert after.error.details["retryable"] is False
    assert handler.final_failures == [(job.id, "RESULT_INVALID")]


@pytest.mark.asyncio
async def test_retry_write_error_fails_the_job_instead_of_leaving_it_processing():
    manager = JobLifecycleManager(BrokenRetryStore(), None, _settings())
    handler = RecordingHandler([LLMTimeout()])
    manager.register(handler)
    job = await manager.create_job("demo", {}, max_attempts=3)

    after = await manager.process(job.id)

    assert after.status == JobStatus.FAILED
    assert after.error.code == "TIMEOUT"
    assert handler.final_failures == [(job.id, "TIMEOUT")]
