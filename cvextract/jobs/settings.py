"""Job lifecycle settings (pydantic-settings)."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class JobSettings(BaseSettings):
    """Env prefix JOBS_."""

    model_config = SettingsConfigDict(
        env_prefix="JOBS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_max_attempts: int = Field(default=3, ge=1, description="Attempts per job incl. the first")
    retry_base_delay_s: float = Field(default=2.0, ge=0, description="Job retry delay = base * 2**(attempt-1)")
    retry_max_delay_s: float | None = Field(default=60.0, description="Cap for job retry delay; None = uncapped")
    worker_concurrency: int = Field(default=2, ge=1, description="Worker tasks per job type")
    error_message_max_chars: int = Field(default=500, ge=50)
    preview_chars: int = Field(default=500, ge=0, description="Bound for raw previews in error details")
