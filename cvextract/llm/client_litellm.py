"""LiteLLM transport for every provider.

One call = semaphore slot + asyncio timeout + vendor error mapping. Call-level
retries run through cvextract.retry; TIMEOUT and RESPONSE_INVALID are handed
back to the caller on the first occurrence and retried, if at all, as a job.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any

from litellm import acompletion

from cvextract.llm.errors import (
    LLMAuthError,
    LLMBadRequest,
    LLMError,
    LLMRateLimited,
    LLMTimeout,
    LLMUnavailable,
)
from cvextract.llm.telemetry import emit_error_metric, emit_latency_metric, emit_tokens_metric
from cvextract.llm.types import LLMProvider, LLMRequest, LLMResponse, LLMUsage
from cvextract.retry import RetryPolicy, error_code, retry_call

NOT_REISSUED_CODES = frozenset({"TIMEOUT", "RESPONSE_INVALID"})

# Vendor exception class name -> LLMError subclass. Names, not types, so the
# table holds across litellm/openai/httpx import paths.
_ERRORS_BY_NAME: dict[str, type[LLMError]] = {
    "APITimeoutError": LLMTimeout,
    "Timeout": LLMTimeout,
    "TimeoutError": LLMTimeout,
    "RateLimitError": LLMRateLimited,
    "AuthenticationError": LLMAuthError,
    "PermissionDeniedError": LLMAuthError,
    "BadRequestError": LLMBadRequest,
    "InvalidRequestError": LLMBadRequest,
    "ServiceUnavailableError": LLMUnavailable,
    "APIConnectionError": LLMUnavailable,
    "APIError": LLMUnavailable,
    "InternalServerError": LLMUnavailable,
}
_UNAVAILABLE_STATUS = frozenset({500, 502, 503, 504})


def _map_exception(e: Exception, provider: LLMProvider) -> LLMError:
    if isinstance(e, LLMError):
        return e
    name = type(e).__name__
    mapped = _ERRORS_BY_NAME.get(name)
    if mapped is LLMUnavailable:
        return LLMUnavailable(str(e) or name, details=name, provider=provider)
    if mapped is not None:
        return mapped(details=name, provider=provider)
    if getattr(e, "status_code", None) in _UNAVAILABLE_STATUS:
        return LLMUnavailable(str(e) or name, details=name, provider=provider)
    return LLMError(str(e) or name, code="UNKNOWN", provider=provider, details=name)


def _completion_kwargs(req: LLMRequest, model: str, timeout_s: float, **transport: Any) -> dict[str, Any]:
    optional = {
        "temperature": req.temperature,
        "max_tokens": req.max_output_tokens,
        "response_format": req.response_format,
    }
    kwargs: dict[str, Any] = {
        "model": model,
        "messages": [m.model_dump() for m in req.messages],
        "timeout": timeout_s,
    }
    kwargs.update({k: v for k, v in optional.items() if v is not None})
    kwargs.update({k: v for k, v in transport.items() if v is not None})
    return kwargs


def _first_choice_text(raw: Any) -> tuple[str, str | None]:
    choices = getattr(raw, "choices", None) or []
    if not choices:
        return "", None
    choice = choices[0]
    message = getattr(choice, "message", None)
    source = message if message is not None else choice
    attr = "content" if message is not None else "text"
    return getattr(source, attr, None) or "", getattr(choice, "finish_reason", None)


def _usage(raw: Any) -> LLMUsage | None:
    usage = getattr(raw, "usage", None)
    if not usage:
        return None
    return LLMUsage(
        input_tokens=getattr(usage, "prompt_tokens", None) or 0,
        output_tokens=getattr(usage, "completion_tokens", None) or 0,
        total_tokens=getattr(usage, "total_tokens", None) or 0,
    )


def _reissue(error: BaseException) -> bool:
    return error_code(error) not in NOT_REISSUED_CODES


class LiteLLMClient:
    """Shared by all providers; the semaphore bounds in-flight calls process-wide."""

    def __init__(
        self,
        *,
        concurrency_limit: int = 8,
        max_retries: int = 2,
        drop_params: bool = True,
        backoff_base_s: float = 0.5,
        backoff_max_s: float = 8.0,
    ) -> None:
        self._slots = asyncio.Semaphore(concurrency_limit)
        self._policy = RetryPolicy(
            max_attempts=max_retries + 1,
            base_delay_s=backoff_base_s,
            max_delay_s=backoff_max_s,
        )
        self._drop_params = drop_params

    async def _call_once(self, provider: LLMProvider, model: str, kwargs: dict[str, Any], timeout: float) -> LLMResponse:
        async with self._slots:
            started = time.perf_counter()
            try:
                raw = await asyncio.wait_for(acompletion(**kwargs), timeout=timeout)
            except Exception as e:  # noqa: BLE001
                mapped = _map_exception(e, provider)
                emit_error_metric(provider.value, mapped.code)
                raise mapped from e
        latency_ms = int((time.perf_counter() - started) * 1000)
        text, finish_reason = _first_choice_text(raw)
        usage = _usage(raw)
        emit_latency_metric(provider.value, model, float(latency_ms))
        if usage is not None:
            emit_tokens_metric(provider.value, model, "in", usage.input_tokens)
            emit_tokens_metric(provider.value, model, "out", usage.output_tokens)
        return LLMResponse(
            text=text,
            usage=usage,
            provider=provider,
            model=model,
            latency_ms=latency_ms,
            finish_reason=finish_reason,
        )

    async def acompletion(
        self,
        provider: LLMProvider,
        model: str,
        req: LLMRequest,
        *,
        timeout_s: float | None = None,
        api_base: str | None = None,
        api_key: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> LLMResponse:
        """One logical completion; raises LLMError once retries (if any) are spent."""
        timeout = timeout_s if timeout_s is not None else req.timeout_s or 60.0
        kwargs = _completion_kwargs(
            req,
            model,
            timeout,
            api_base=api_base,
            api_key=api_key,
            drop_params=True if self._drop_params else None,
        )
        kwargs.update(extra or {})
        return await retry_call(
            lambda: self._call_once(provider, model, kwargs, timeout),
            self._policy,
            reissue=_reissue,
        )
