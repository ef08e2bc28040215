"""Gemini (Google AI Studio) provider. API key passed explicitly (no os.environ in adapter)."""
from __future__ import annotations

from cvextract.llm.ports import LLMClientPort
from cvextract.llm.providers.common import complete_text
from cvextract.llm.settings import LLMSettings
from cvextract.llm.types import GenerationOptions, LLMMessage, LLMProvider


class GeminiProvider:
    name = LLMProvider.GEMINI.value

    def __init__(self, settings: LLMSettings, client: LLMClientPort) -> None:
        self._settings = settings
        self._client = client

    async def generate(self, messages: list[LLMMessage], options: GenerationOptions | None = None) -> str:
        extra = None
        if self._settings.gemini_safety_settings is not None:
            extra = {"safety_settings": self._settings.gemini_safety_settings}
        return await complete_text(
            self._client,
            self._settings,
            LLMProvider.GEMINI,
            messages,
            options,
            api_key=self._settings.gemini_api_key,
            extra=extra,
        )
