"""Job handlers: the work each job type runs, and what happens when it finally fails."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from cvextract.extraction.errors import ExtractionValidationError
from cvextract.extraction.orchestrator import ChunkExtractionOrchestrator
from cvextract.jobs.manager import ProgressReporter
from cvextract.jobs.models import CV_PARSING, ErrorDescriptor, JobSnapshot
from cvextract.jobs.ports import CvDocumentStorePort

logger = logging.getLogger(__name__)


@runtime_checkable
class JobHandler(Protocol):
    job_type: str

    async def run(self, job: JobSnapshot, reporter: ProgressReporter) -> dict[str, Any]:
        ...

    async def on_final_failure(self, job: JobSnapshot, error: ErrorDescriptor) -> None:
        ...


class CvParsingHandler:
    """cv_parsing jobs. Payload: {"text": str, "sections": {name: text} | None}.

    related_entity_id, when set, is the CvDocument that receives the record.
    """

    job_type = CV_PARSING

    def __init__(
        self,
        orchestrator: ChunkExtractionOrchestrator,
        documents: CvDocumentStorePort | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._documents = documents

    async def run(self, job: JobSnapshot, reporter: ProgressReporter) -> dict[str, Any]:
        text = job.payload.get("text")
        if not isinstance(text, str):
            raise ExtractionValidationError("Job payload has no CV text")
        sections = job.payload.get("sections")
        if sections is not None and not isinstance(sections, Mapping):
            raise ExtractionValidationError("Job payload sections must be a mapping of name to text")
        await reporter(10, "Starting CV parsing")
        if self._documents is not None and job.related_entity_id:
            await self._documents.mark_processing(job.related_entity_id)

        result = await self._orchestrator.extract(text, sections, on_progress=reporter)

        if await reporter.cancelled():
            logger.info("cv parsing finished after cancel; discarding", extra={"job_id": job.id})
            return {}
        record = result.record.model_dump(mode="json")
        metadata = result.metadata.model_dump(mode="json")
        await reporter(95, "Saving parsed CV")
        if self._documents is not None and job.related_entity_id:
            await self._documents.save_parsed(job.related_entity_id, record, metadata)
        return {"record": record, "metadata": metadata}

    async def on_final_failure(self, job: JobSnapshot, error: ErrorDescriptor) -> None:
        if self._documents is None or not job.related_entity_id:
            return
        await self._documents.mark_failed(job.related_entity_id, error.code)
