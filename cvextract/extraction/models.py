"""DTOs for chunked extraction (not DB ORM models)."""
from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from cvextract.extraction.canonical import CanonicalRecord
from cvextract.extraction.prompts import (
    CHUNK_CREDENTIALS,
    CHUNK_EXPERIENCE,
    CHUNK_PROFILE,
    PromptTemplate,
)

# Fixed field-to-chunk assignment; merge order follows this dict.
CHUNK_FIELDS: dict[str, frozenset[str]] = {
    CHUNK_PROFILE: frozenset({"personal_info", "professional_summary", "education", "languages"}),
    CHUNK_EXPERIENCE: frozenset({"work_experience", "projects"}),
    CHUNK_CREDENTIALS: frozenset({"skills", "certifications", "publications", "volunteer"}),
}


class ChunkRequest(BaseModel):
    """One independent extraction task. Ephemeral."""

    name: str
    text: str
    template: PromptTemplate | None = None


class ChunkFragment(BaseModel):
    kind: Literal["fragment"] = "fragment"
    name: str
    data: dict[str, Any] = Field(default_factory=dict)


class ChunkAbsent(BaseModel):
    """Explicit no-data marker for a chunk that was skipped or failed on its own."""

    kind: Literal["absent"] = "absent"
    name: str
    reason: Literal["skipped", "failed"]
    error_code: str | None = None
    message: str | None = None
    preview: str | None = None


ChunkResult = Annotated[Union[ChunkFragment, ChunkAbsent], Field(discriminator="kind")]


class ExtractionMetadata(BaseModel):
    processing_ms: int
    fields_found: list[str] = Field(default_factory=list)
    sections_found: list[str] = Field(default_factory=list)
    chunks_succeeded: list[str] = Field(default_factory=list)
    chunks_failed: list[str] = Field(default_factory=list)
    chunks_skipped: list[str] = Field(default_factory=list)
    method: str = "chunked-parallel"

    @property
    def fields_found_count(self) -> int:
        return len(self.fields_found)


class ExtractionResult(BaseModel):
    record: CanonicalRecord
    chunks: list[ChunkResult] = Field(default_factory=list)
    metadata: ExtractionMetadata
