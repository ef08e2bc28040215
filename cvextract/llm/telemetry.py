"""LLM call observability: preview redaction, the llm_call log event, metric stubs.

Prompt text and API keys never reach a log line or a stored job error.
"""
from __future__ import annotations

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_CHARS = 200

# Applied in order; secrets first so a key that looks like a phone number stays a secret.
_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bsk-[A-Za-z0-9_-]{20,}\b"), "[REDACTED]"),
    (re.compile(r"\bAIza[A-Za-z0-9_-]{35}\b"), "[REDACTED]"),
    (re.compile(r"\bBearer\s+[A-Za-z0-9_.-]+", re.IGNORECASE), "[REDACTED]"),
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    (re.compile(r"\+?\d[\d\s().-]{7,}\d"), "[PHONE]"),
)


def redact_preview(text: str | None, max_chars: int = DEFAULT_PREVIEW_CHARS) -> str:
    """Mask secrets, emails and phone numbers, then cut to max_chars (+ "...")."""
    if not text:
        return ""
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text if len(text) <= max_chars else text[:max_chars] + "..."


def log_llm_call(
    *,
    provider: str,
    model: str,
    latency_ms: int,
    status: str,
    error_code: str | None = None,
    stage: str | None = None,
) -> None:
    extra: dict[str, Any] = {"provider": provider, "model": model, "latency_ms": latency_ms, "status": status}
    extra.update({k: v for k, v in (("stage", stage), ("error_code", error_code)) if v is not None})
    if status == "SUCCEEDED":
        logger.info("llm_call", extra=extra)
    else:
        logger.warning("llm_call", extra=extra)


# No metrics backend in this process; these stay at debug level.
def emit_latency_metric(provider: str, model: str, latency_ms: float) -> None:
    logger.debug("metric llm_latency_ms provider=%s model=%s value=%.1f", provider, model, latency_ms)


def emit_tokens_metric(provider: str, model: str, kind: str, count: int) -> None:
    logger.debug("metric llm_tokens provider=%s model=%s kind=%s value=%d", provider, model, kind, count)


def emit_error_metric(provider: str, code: str) -> None:
    logger.debug("metric llm_errors provider=%s code=%s", provider, code)
