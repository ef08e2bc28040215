"""Extraction module: response interpreter, canonicalizer, section locator, chunk orchestrator."""
from cvextract.extraction.canonical import CanonicalRecord, canonicalize
from cvextract.extraction.errors import ConfigurationError, ExtractionError, ExtractionValidationError
from cvextract.extraction.models import ChunkAbsent, ChunkFragment, ExtractionResult
from cvextract.extraction.orchestrator import ChunkExtractionOrchestrator
from cvextract.extraction.response import parse_json_response
from cvextract.extraction.settings import ExtractionSettings

__all__ = [
    "CanonicalRecord",
    "ChunkAbsent",
    "ChunkExtractionOrchestrator",
    "ChunkFragment",
    "ConfigurationError",
    "ExtractionError",
    "ExtractionResult",
    "ExtractionSettings",
    "ExtractionValidationError",
    "canonicalize",
    "parse_json_response",
]
