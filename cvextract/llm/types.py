"""Typed request/response models for the generation boundary (Pydantic v2)."""
from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class LLMProvider(str, Enum):
    """Supported LLM providers. Values are the registry keys."""

    OLLAMA = "ollama"
    GEMINI = "gemini"
    OPENAI = "openai"


class LLMMessage(BaseModel):
    """Single message in OpenAI-style format."""

    role: Literal["system", "user", "assistant"]
    content: str


class GenerationOptions(BaseModel):
    """Per-call options. model=None means the provider's configured default."""

    model: str | None = None
    temperature: float | None = None
    max_output_tokens: int | None = None
    format: Literal["json", "text"] | None = None
    timeout_s: float | None = None


class LLMRequest(BaseModel):
    """Request for a single chat completion."""

    messages: list[LLMMessage]
    temperature: float | None = None
    max_output_tokens: int | None = None
    response_format: dict[str, Any] | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    timeout_s: float | None = None

    @classmethod
    def from_options(cls, messages: list[LLMMessage], options: GenerationOptions) -> "LLMRequest":
        return cls(
            messages=messages,
            temperature=options.temperature,
            max_output_tokens=options.max_output_tokens,
            response_format={"type": "json_object"} if options.format == "json" else None,
            timeout_s=options.timeout_s,
        )


class LLMUsage(BaseModel):
    """Token usage and optional cost."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float | None = None


class LLMResponse(BaseModel):
    """Normalized response from any provider."""

    text: str
    usage: LLMUsage | None = None
    provider: LLMProvider
    model: str
    latency_ms: int
    finish_reason: str | None = None
