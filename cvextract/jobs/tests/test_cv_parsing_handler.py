"""CvParsingHandler with a fake orchestrator and document store."""
import pytest

from cvextract.extraction.canonical import CanonicalRecord
from cvextract.extraction.models import ExtractionMetadata, ExtractionResult
from cvextract.jobs.adapters.memory import InMemoryJobStore
from cvextract.jobs.handlers import CvParsingHandler, JobHandler
from cvextract.jobs.manager import JobLifecycleManager
from cvextract.jobs.models import CV_PARSING, JobStatus
from cvextract.jobs.settings import JobSettings


class FakeOrchestrator:
    def __init__(self, before_return=None):
        self.before_return = before_return
        self.seen = []

    async def extract(self, text, sections=None, *, on_progress=None):
        self.seen.append((text, sections))
        await on_progress(40, "Extracting sections")
        if self.before_return is not None:
            await self.before_return()
        return ExtractionResult(record=CanonicalRecord(), metadata=ExtractionMetadata(processing_ms=1))


class FakeDocuments:
    def __init__(self):
        self.events = []

    async def mark_processing(self, document_id):
        self.events.append(("processing", document_id))

    async def save_parsed(self, document_id, record, metadata):
        self.events.append(("saved", document_id, record["title"]))

    async def mark_failed(self, document_id, error_code):
        self.events.append(("failed", document_id, error_code))


def _manager(handler):
    manager = JobLifecycleManager(InMemoryJobStore(), None, JobSettings(retry_base_delay_s=0))
    manager.register(handler)
    return manager


def test_handler_satisfies_protocol():
    assert isinstance(CvParsingHandler(FakeOrchestrator()), JobHandler)


@pytest.mark.asyncio
async def test_run_passes_text_and_sections_and_saves_document():
    orchestrator = FakeOrchestrator()
    docs = FakeDocuments()
    manager = _manager(CvParsingHandler(orchestrator, docs))
    job = await manager.create_job(
        CV_PARSING, {"text": "Ada", "sections": {"experience": "Experience\nAnalyst"}}, related_entity_id="doc-1"
    )

    done = await manager.process(job.id)

    assert done.status == JobStatus.COMPLETED
    assert orchestrator.seen == [("Ada", {"experience": "Experience\nAnalyst"})]
    assert done.result["record"]["title"] == "Untitled CV"
    assert done.result["metadata"]["method"] == "chunked-parallel"
    assert docs.events == [("processing", "doc-1"), ("saved", "doc-1", "Untitled CV")]


@pytest.mark.asyncio
async def test_cancel_during_extraction_skips_save():
    docs = FakeDocuments()
    holder = {}

    async def cancel_job():
        await holder["manager"].cancel(holder["job_id"], "stop")

    manager = _manager(CvParsingHandler(FakeOrchestrator(before_return=cancel_job), docs))
    holder["manager"] = manager
    job = await manager.create_job(CV_PARSING, {"text": "Ada"}, related_entity_id="doc-1")
    holder["job_id"] = job.id

    final = await manager.process(job.id)

    assert final.status == JobStatus.CANCELLED
    assert final.result is None
    assert docs.events == [("processing", "doc-1")]


@pytest.mark.asyncio
async def test_missing_text_is_validation_failure_and_marks_document():
    docs = FakeDocuments()
    manager = _manager(CvParsingHandler(FakeOrchestrator(), docs))
    job = await manager.create_job(CV_PARSING, {}, related_entity_id="doc-9")

    failed = await manager.process(job.id)

    assert failed.status == JobStatus.FAILED
    assert failed.error.code == "VALIDATION_ERROR"
    assert docs.events == [("failed", "doc-9", "VALIDATION_ERROR")]


@pytest.mark.asyncio
async def test_sections_that_are_not_a_mapping_fail_without_retry():
    orchestrator = FakeOrchestrator()
    manager = _manager(CvParsingHandler(orchestrator))
    job = await manager.create_job(CV_PARSING, {"text": "Ada", "sections": ["experience"]}, max_attempts=3)

    failed = await manager.process(job.id)

    assert failed.status == JobStatus.FAILED
    assert failed.attempts == 1
    assert failed.error.code == "VALIDATION_ERROR"
    assert orchestrator.seen == []
