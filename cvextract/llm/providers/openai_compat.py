"""OpenAI (or any OpenAI-compatible server via api_base) provider."""
from __future__ import annotations

from cvextract.llm.ports import LLMClientPort
from cvextract.llm.providers.common import complete_text
from cvextract.llm.settings import LLMSettings
from cvextract.llm.types import GenerationOptions, LLMMessage, LLMProvider


class OpenAIProvider:
    name = LLMProvider.OPENAI.value

    def __init__(self, settings: LLMSettings, client: LLMClientPort) -> None:
        self._settings = settings
        self._client = client

    async def generate(self, messages: list[LLMMessage], options: GenerationOptions | None = None) -> str:
        return await complete_text(
            self._client,
            self._settings,
            LLMProvider.OPENAI,
            messages,
            options,
            api_key=self._settings.openai_api_key,
            api_base=self._settings.openai_api_base,
        )
