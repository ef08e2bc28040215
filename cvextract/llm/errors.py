"""Error taxonomy for LLM module. All map to stable codes for job records and retry decisions.

``retryable`` is the origin's call-level hint. Job-level retry decisions are made by
cvextract.retry, which may still retry an error the call path would not re-issue.
"""
from __future__ import annotations

from cvextract.llm.types import LLMProvider


class LLMError(Exception):
    """Base for all LLM errors. code is stable for persistence; details must not leak secrets."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "UNKNOWN",
        retryable: bool = False,
        provider: LLMProvider | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.provider = provider
        self.details = details or ""


class LLMTimeout(LLMError):
    """Request exceeded its time budget. Never re-issued immediately; surfaced to job retry."""

    def __init__(self, message: str = "LLM request timed out", **kwargs: object) -> None:
        super().__init__(message, code="TIMEOUT", retryable=True, **kwargs)


class LLMRateLimited(LLMError):
    """Rate limit (429) or quota exceeded."""

    def __init__(self, message: str = "LLM rate limited", **kwargs: object) -> None:
        super().__init__(message, code="RATE_LIMITED", retryable=True, **kwargs)


class LLMBadRequest(LLMError):
    """Invalid request (e.g. schema, params)."""

    def __init__(self, message: str = "LLM bad request", **kwargs: object) -> None:
        super().__init__(message, code="BAD_REQUEST", retryable=False, **kwargs)


class LLMAuthError(LLMError):
    """Authentication or authorization failure."""

    def __init__(self, message: str = "LLM auth error", **kwargs: object) -> None:
        super().__init__(message, code="AUTH_ERROR", retryable=False, **kwargs)


class LLMUnavailable(LLMError):
    """Service unavailable (5xx, connection, etc.)."""

    def __init__(self, message: str = "LLM unavailable", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, code="UNAVAILABLE", **kwargs)


class LLMConfigError(LLMError):
    """Unknown provider name or missing credentials at startup."""

    def __init__(self, message: str = "LLM misconfigured", **kwargs: object) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR", retryable=False, **kwargs)


class LLMResponseInvalid(LLMError):
    """Raw response text could not be recovered into a structured value.

    Carries a bounded preview of the input, the decoder message and, when the decoder
    reported an offset, a window of text around it.
    """

    def __init__(
        self,
        message: str = "LLM response invalid",
        *,
        preview: str = "",
        parse_error: str | None = None,
        context: str | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(message, code="RESPONSE_INVALID", retryable=False, **kwargs)
        self.preview = preview
        self.parse_error = parse_error
        self.context = context
