"""Extraction-specific exceptions. code is stable for job error descriptors."""
from __future__ import annotations

from typing import Any


class ExtractionError(Exception):
    """Base exception for extraction failures."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "EXTRACTION_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigurationError(ExtractionError):
    """Mandatory prompt template missing. Fatal; never retried."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR", **kwargs)


class ExtractionValidationError(ExtractionError):
    """Malformed input to extraction itself (e.g. empty document text). Fatal; never retried."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code="VALIDATION_ERROR", **kwargs)


class ChunkBatchFailed(ExtractionError):
    """Every issued chunk failed. Carries the first chunk's code so the job retry can classify it."""
