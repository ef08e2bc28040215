"""Ollama provider: local server, model and api_base from settings."""
from __future__ import annotations

from cvextract.llm.ports import LLMClientPort
from cvextract.llm.providers.common import complete_text
from cvextract.llm.settings import LLMSettings
from cvextract.llm.types import GenerationOptions, LLMMessage, LLMProvider


class OllamaProvider:
    name = LLMProvider.OLLAMA.value

    def __init__(self, settings: LLMSettings, client: LLMClientPort) -> None:
        self._settings = settings
        self._client = client

    async def generate(self, messages: list[LLMMessage], options: GenerationOptions | None = None) -> str:
        return await complete_text(
            self._client,
            self._settings,
            LLMProvider.OLLAMA,
            messages,
            options,
            api_base=self._settings.ollama_api_base,
        )
