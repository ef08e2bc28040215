"""LLM module: provider registry, LiteLLM transport, typed errors. Other modules use LLMService or GenerationProvider."""
from cvextract.llm.errors import LLMError, LLMResponseInvalid, LLMTimeout
from cvextract.llm.ports import GenerationProvider
from cvextract.llm.service import LLMService
from cvextract.llm.settings import LLMSettings
from cvextract.llm.types import GenerationOptions, LLMMessage, LLMProvider

__all__ = [
    "GenerationOptions",
    "GenerationProvider",
    "LLMError",
    "LLMMessage",
    "LLMProvider",
    "LLMResponseInvalid",
    "LLMService",
    "LLMSettings",
    "LLMTimeout",
]
