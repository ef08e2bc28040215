"""LLM module configuration. Env prefix: LLM_. Keys: LLM_GEMINI_API_KEY, LLM_OPENAI_API_KEY."""
from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cvextract.llm.types import LLMProvider


class LLMSettings(BaseSettings):
    """Settings for provider selection, client and call-level retry. All overridable via LLM_* env vars."""

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: LLMProvider = Field(default=LLMProvider.OLLAMA, description="Primary provider (registry key)")
    fallback_order: list[LLMProvider] = Field(
        default_factory=list,
        description="Providers tried after the primary on retryable errors",
    )
    concurrency_limit: int = Field(default=8, ge=1, description="Max concurrent LLM calls per process")
    default_timeout_s: float = Field(default=120.0, gt=0, description="Per-call timeout")
    max_retries: int = Field(default=2, ge=0, description="Call-level retries for retryable errors")
    retry_backoff_base_s: float = Field(default=0.5, gt=0, description="Base delay for exponential backoff")
    retry_backoff_max_s: float = Field(default=8.0, gt=0, description="Max call-level backoff delay")
    drop_unsupported_params: bool = Field(
        default=True,
        description="Drop OpenAI params not supported by provider (multi-provider safety)",
    )

    ollama_api_base: str = Field(default="http://localhost:11434", description="Ollama server URL")
    ollama_model: str = Field(default="ollama/gemma2:2b", description="Ollama model (ollama/ prefix)")

    gemini_api_key: str | None = Field(default=None, description="API key (env: LLM_GEMINI_API_KEY)")
    gemini_model: str = Field(default="gemini/gemini-2.0-flash", description="Gemini model (gemini/ prefix)")
    gemini_safety_settings: list[dict] | None = Field(default=None, description="Optional safety settings")

    openai_api_key: str | None = Field(default=None, description="API key (env: LLM_OPENAI_API_KEY)")
    openai_api_base: str | None = Field(default=None, description="Override for OpenAI-compatible servers")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model")

    @model_validator(mode="after")
    def validate_providers(self) -> "LLMSettings":
        for provider in [self.provider, *self.fallback_order]:
            if provider == LLMProvider.GEMINI and not self.gemini_api_key:
                raise ValueError("gemini provider requires gemini_api_key (set LLM_GEMINI_API_KEY)")
            if provider == LLMProvider.OPENAI and not (self.openai_api_key or self.openai_api_base):
                raise ValueError("openai provider requires openai_api_key or openai_api_base")
        if not (self.model_for(self.provider) or "").strip():
            raise ValueError(f"{self.provider.value} provider requires a non-empty model")
        return self

    def model_for(self, provider: LLMProvider) -> str:
        return {
            LLMProvider.OLLAMA: self.ollama_model,
            LLMProvider.GEMINI: self.gemini_model,
            LLMProvider.OPENAI: self.openai_model,
        }[provider]
