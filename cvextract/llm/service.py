"""
LLMService: single public entrypoint. Builds the configured provider from the registry and
falls back through settings.fallback_order on retryable errors. Implements GenerationProvider,
so extraction code depends only on the port.
"""
from __future__ import annotations

import logging

from cvextract.llm.client_litellm import NOT_REISSUED_CODES, LiteLLMClient
from cvextract.llm.errors import LLMError
from cvextract.llm.ports import GenerationProvider, LLMClientPort
from cvextract.llm.providers import build_provider
from cvextract.llm.settings import LLMSettings
from cvextract.llm.types import GenerationOptions, LLMMessage

logger = logging.getLogger(__name__)


class LLMService:
    """Provider selection and fallback. Caller owns prompts and parsing."""

    def __init__(
        self,
        settings: LLMSettings,
        *,
        client: LLMClientPort | None = None,
        providers: list[GenerationProvider] | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or LiteLLMClient(
            concurrency_limit=settings.concurrency_limit,
            max_retries=settings.max_retries,
            drop_params=settings.drop_unsupported_params,
            backoff_base_s=settings.retry_backoff_base_s,
            backoff_max_s=settings.retry_backoff_max_s,
        )
        if providers is None:
            order = [settings.provider] + [p for p in settings.fallback_order if p != settings.provider]
            providers = [build_provider(p.value, settings, self._client) for p in order]
        if not providers:
            raise ValueError("LLMService needs at least one provider")
        self._providers = providers

    @property
    def name(self) -> str:
        return self._providers[0].name

    async def generate(self, messages: list[LLMMessage], options: GenerationOptions | None = None) -> str:
        """Try providers in order. Timeouts and unparseable output are not handed to a fallback."""
        last_error: LLMError | None = None
        for provider in self._providers:
            try:
                return await provider.generate(messages, options)
            except LLMError as e:
                last_error = e
                if not e.retryable or e.code in NOT_REISSUED_CODES:
                    raise
                logger.warning(
                    "provider %s failed with %s, trying next", provider.name, e.code,
                    extra={"provider": provider.name, "error_code": e.code},
                )
        if last_error is not None:
            raise last_error
        raise LLMError("No provider succeeded", code="UNKNOWN", retryable=False)
