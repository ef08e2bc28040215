"""Chunked-parallel CV extraction: three concurrent chunk calls over the full text, merged canonically."""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Mapping
from typing import Any, Awaitable, Callable

from cvextract.extraction.canonical import canonical_key, canonicalize, summarize_sections
from cvextract.extraction.errors import ChunkBatchFailed, ConfigurationError, ExtractionValidationError
from cvextract.extraction.models import (
    CHUNK_FIELDS,
    ChunkAbsent,
    ChunkFragment,
    ChunkRequest,
    ChunkResult,
    ExtractionMetadata,
    ExtractionResult,
)
from cvextract.extraction.prompts import MANDATORY_TEMPLATES, PromptTemplate, load_templates
from cvextract.extraction.response import parse_json_response
from cvextract.extraction.sections import has_sections, locate_sections
from cvextract.extraction.settings import ExtractionSettings
from cvextract.llm.errors import LLMResponseInvalid
from cvextract.llm.ports import GenerationProvider
from cvextract.llm.telemetry import redact_preview
from cvextract.llm.types import GenerationOptions, LLMMessage
from cvextract.retry import error_code

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], Awaitable[None] | None]


async def _report(on_progress: ProgressCallback | None, percent: int, step: str) -> None:
    if on_progress is None:
        return
    result = on_progress(percent, step)
    if inspect.isawaitable(result):
        await result


def restrict_fragment(name: str, data: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only the keys assigned to this chunk, so overlap between chunks cannot leak across."""
    allowed = CHUNK_FIELDS[name]
    return {k: v for k, v in data.items() if canonical_key(k) in allowed}


class ChunkExtractionOrchestrator:
    """Runs one document through the profile, experience and credentials chunks."""

    def __init__(
        self,
        generator: GenerationProvider,
        settings: ExtractionSettings | None = None,
        *,
        templates: Mapping[str, PromptTemplate | None] | None = None,
    ) -> None:
        self._generator = generator
        self._settings = settings or ExtractionSettings()
        self._templates: dict[str, PromptTemplate | None] | None = dict(templates) if templates is not None else None
        self._initialized = False

    def initialize(self) -> None:
        """Load templates once. A missing mandatory template is a configuration error."""
        if self._initialized:
            return
        if self._templates is None:
            self._templates = load_templates(
                self._settings.prompts_dir,
                use_builtin=self._settings.use_builtin_prompts,
            )
        missing = sorted(name for name in MANDATORY_TEMPLATES if self._templates.get(name) is None)
        if missing:
            raise ConfigurationError(f"Mandatory prompt template missing: {', '.join(missing)}")
        self._initialized = True
        logger.info(
            "extraction orchestrator initialized",
            extra={"templates": sorted(k for k, v in self._templates.items() if v is not None)},
        )

    def capabilities(self) -> dict[str, Any]:
        templates = self._templates or {}
        return {
            "supported_chunks": sorted(k for k, v in templates.items() if v is not None),
            "template_versions": {k: v.version for k, v in templates.items() if v is not None},
            "method": "chunked-parallel",
            "provider": getattr(self._generator, "name", "unknown"),
            "section_extraction": "keyword-headers",
            "initialized": self._initialized,
        }

    def _options(self) -> GenerationOptions:
        return GenerationOptions(
            model=self._settings.model,
            temperature=self._settings.temperature,
            max_output_tokens=self._settings.max_output_tokens,
            format="json",
            timeout_s=self._settings.chunk_timeout_s,
        )

    async def run_chunk(self, request: ChunkRequest) -> ChunkResult:
        """Issue one chunk call. Never raises: any failure becomes ChunkAbsent."""
        if request.template is None:
            logger.info("chunk skipped: no template", extra={"chunk": request.name})
            return ChunkAbsent(name=request.name, reason="skipped", message="no template")
        if not request.text.strip():
            logger.info("chunk skipped: empty input", extra={"chunk": request.name})
            return ChunkAbsent(name=request.name, reason="skipped", message="empty input")

        messages = [LLMMessage(role="user", content=request.template.render(request.text))]
        t0 = time.perf_counter()
        try:
            raw = await self._generator.generate(messages, self._options())
            parsed = parse_json_response(raw)
        except Exception as e:  # noqa: BLE001
            preview = None
            if isinstance(e, LLMResponseInvalid):
                preview = redact_preview(e.preview, self._settings.preview_chars)
            logger.warning(
                "chunk failed: %s",
                request.name,
                extra={"chunk": request.name, "error_type": type(e).__name__, "error_code": error_code(e)},
            )
            return ChunkAbsent(
                name=request.name,
                reason="failed",
                error_code=error_code(e) or type(e).__name__,
                message=str(e)[:300],
                preview=preview,
            )
        if not isinstance(parsed, Mapping):
            logger.warning("chunk returned %s, expected object", type(parsed).__name__, extra={"chunk": request.name})
            return ChunkAbsent(
                name=request.name,
                reason="failed",
                error_code="RESPONSE_INVALID",
                message=f"expected a JSON object, got {type(parsed).__name__}",
            )
        logger.debug(
            "chunk parsed",
            extra={"chunk": request.name, "latency_ms": int((time.perf_counter() - t0) * 1000)},
        )
        return ChunkFragment(name=request.name, data=restrict_fragment(request.name, parsed))

    async def extract(
        self,
        text: str,
        sections: Mapping[str, str] | None = None,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> ExtractionResult:
        """Extract one canonical record from full document text."""
        self.initialize()
        if not isinstance(text, str) or not text.strip():
            raise ExtractionValidationError("CV text content is required")

        t0 = time.perf_counter()
        logger.info("extraction started", extra={"text_length": len(text), "has_sections": has_sections(sections)})

        await _report(on_progress, 40, "Extracting sections")
        section_texts = dict(sections) if has_sections(sections) else locate_sections(text)

        await _report(on_progress, 50, "Parsing in parallel chunks")
        templates = self._templates or {}
        requests = [ChunkRequest(name=name, text=text, template=templates.get(name)) for name in CHUNK_FIELDS]
        results: list[ChunkResult] = list(await asyncio.gather(*(self.run_chunk(r) for r in requests)))

        await _report(on_progress, 85, "Merging chunk results")
        fragments = [r.data for r in results if isinstance(r, ChunkFragment)]
        failed = [r for r in results if isinstance(r, ChunkAbsent) and r.reason == "failed"]
        skipped = [r.name for r in results if isinstance(r, ChunkAbsent) and r.reason == "skipped"]

        if not fragments and failed and self._settings.fail_when_all_chunks_fail:
            first = failed[0]
            raise ChunkBatchFailed(
                f"All chunks failed; first: {first.name}: {first.message}",
                code=first.error_code or "EXTRACTION_ERROR",
                details={
                    "chunks": {r.name: r.error_code for r in failed},
                    "preview": first.preview or "",
                },
            )

        record = canonicalize(*fragments)
        metadata = ExtractionMetadata(
            processing_ms=int((time.perf_counter() - t0) * 1000),
            fields_found=summarize_sections(record),
            sections_found=[name for name, body in section_texts.items() if body and body.strip()],
            chunks_succeeded=[r.name for r in results if isinstance(r, ChunkFragment)],
            chunks_failed=[r.name for r in failed],
            chunks_skipped=skipped,
        )
        logger.info(
            "extraction complete",
            extra={
                "processing_ms": metadata.processing_ms,
                "fields_found": len(metadata.fields_found),
                "chunks_failed": metadata.chunks_failed,
            },
        )
        return ExtractionResult(record=record, chunks=results, metadata=metadata)
