"""Shared call path for provider adapters: options → LLMRequest → client → text."""
from __future__ import annotations

from typing import Any

from cvextract.llm.ports import LLMClientPort
from cvextract.llm.settings import LLMSettings
from cvextract.llm.telemetry import log_llm_call
from cvextract.llm.errors import LLMError
from cvextract.llm.types import GenerationOptions, LLMMessage, LLMProvider, LLMRequest


async def complete_text(
    client: LLMClientPort,
    settings: LLMSettings,
    provider: LLMProvider,
    messages: list[LLMMessage],
    options: GenerationOptions | None,
    **provider_kwargs: Any,
) -> str:
    """Run one completion and return its text. Logs every call, success or failure."""
    options = options or GenerationOptions()
    model = options.model or settings.model_for(provider)
    req = LLMRequest.from_options(messages, options)
    timeout_s = options.timeout_s or settings.default_timeout_s
    try:
        resp = await client.acompletion(provider, model, req, timeout_s=timeout_s, **provider_kwargs)
    except LLMError as e:
        log_llm_call(provider=provider.value, model=model, latency_ms=0, status="FAILED", error_code=e.code)
        raise
    log_llm_call(provider=provider.value, model=model, latency_ms=resp.latency_ms, status="SUCCEEDED")
    return resp.text
