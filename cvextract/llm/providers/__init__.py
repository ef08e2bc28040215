"""Provider adapters, selected at startup by name from PROVIDER_REGISTRY."""
from __future__ import annotations

from typing import Callable

from cvextract.llm.errors import LLMConfigError
from cvextract.llm.ports import GenerationProvider, LLMClientPort
from cvextract.llm.providers.gemini import GeminiProvider
from cvextract.llm.providers.ollama import OllamaProvider
from cvextract.llm.providers.openai_compat import OpenAIProvider
from cvextract.llm.settings import LLMSettings

ProviderFactory = Callable[[LLMSettings, LLMClientPort], GenerationProvider]

PROVIDER_REGISTRY: dict[str, ProviderFactory] = {
    "ollama": OllamaProvider,
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
}


def build_provider(name: str, settings: LLMSettings, client: LLMClientPort) -> GenerationProvider:
    """Instantiate the adapter registered under name. Unknown names are a configuration error."""
    factory = PROVIDER_REGISTRY.get(name.lower())
    if factory is None:
        raise LLMConfigError(f"Unknown LLM provider: {name!r} (known: {sorted(PROVIDER_REGISTRY)})")
    return factory(settings, client)


__all__ = ["PROVIDER_REGISTRY", "build_provider", "GeminiProvider", "OllamaProvider", "OpenAIProvider"]
