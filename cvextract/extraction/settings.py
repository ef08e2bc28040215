"""Extraction configuration. Env prefix: EXTRACT_."""
from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtractionSettings(BaseSettings):
    """Settings for chunked-parallel extraction."""

    model_config = SettingsConfigDict(
        env_prefix="EXTRACT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    prompts_dir: Path | None = Field(
        default=None,
        description="Directory with <template_name>.txt overrides; built-ins used for missing files",
    )
    use_builtin_prompts: bool = Field(default=True, description="Fall back to built-in templates")
    model: str | None = Field(default=None, description="Model override for chunk calls (provider default if unset)")
    temperature: float = Field(default=0.3, ge=0, le=2, description="Sampling temperature for chunk calls")
    max_output_tokens: int = Field(default=4000, ge=1, description="Max output tokens per chunk call")
    chunk_timeout_s: float | None = Field(default=None, gt=0, description="Per-chunk call timeout")
    fail_when_all_chunks_fail: bool = Field(
        default=True,
        description="Raise when no chunk produced data so the job-level retry can act",
    )
    preview_chars: int = Field(default=500, ge=0, description="Max chars of a bad response kept for diagnostics")
