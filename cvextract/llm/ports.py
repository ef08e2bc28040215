"""Port interfaces for the LLM module. Other modules depend on these, not on implementations."""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from cvextract.llm.types import GenerationOptions, LLMMessage, LLMProvider, LLMRequest, LLMResponse


@runtime_checkable
class LLMClientPort(Protocol):
    """Low-level, provider-agnostic completion. Used by provider adapters."""

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
        """Execute one completion for the given provider/model. Raises LLMError on failure."""
        ...


@runtime_checkable
class GenerationProvider(Protocol):
    """Capability every vendor adapter (and LLMService) implements: messages in, raw text out."""

    name: str

    async def generate(self, messages: list[LLMMessage], options: GenerationOptions | None = None) -> str:
        """Return the raw generated text. Raises LLMError on failure."""
        ...
