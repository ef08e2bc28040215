"""Connection settings for the job and CV document tables (env prefix DB_)."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DBConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DB_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    db_url: str = Field(default="sqlite:///./data/cvextract.db", description="Job store URL")
    echo_sql: bool = Field(default=False)
    create_tables: bool = Field(default=True, description="init_db creates missing tables")
    # Workers hold no long transactions; claims retry on SQLITE_BUSY up to this long.
    sqlite_busy_timeout_ms: int = Field(default=5000, ge=0)
    sqlite_journal_mode: str = Field(default="WAL")
    sqlite_synchronous: str = Field(default="NORMAL")
    sqlite_foreign_keys: bool = Field(default=True)
    # Progress updates are frequent small writes; checkpoint the WAL every N pages.
    sqlite_wal_autocheckpoint: int = Field(default=1000, ge=0)
