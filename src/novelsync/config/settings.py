"""Application settings loaded from environment variables.

Hey future me - every knob the engines read lives HERE, nothing is hard-coded in the
services! Nested sections are plain pydantic models; the env var for a nested field
uses the "__" delimiter, e.g.:

    NOVELSYNC_SYNC__CONCURRENCY=2
    NOVELSYNC_DATABASE__URL=sqlite+aiosqlite:////data/library.db

Tests build Settings(...) directly with keyword overrides instead of touching env.
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Datastore connection settings."""

    url: str = "sqlite+aiosqlite:///./novelsync.db"
    echo: bool = False


class ObservabilitySettings(BaseModel):
    """Logging output settings."""

    log_json_format: bool = False


class NetworkSettings(BaseModel):
    """Settings for the HTTP layer used by content sources."""

    # Fixed per-call deadline; a call that exceeds it is aborted and fails.
    request_timeout: float = Field(default=5.0, gt=0)
    user_agent: str = "novelsync/0.1"


class SyncSettings(BaseModel):
    """Library synchronization settings.

    Hey future me - concurrency defaults to 1 ON PURPOSE. The embedded SQLite store
    only has one writer, and parallel refreshes just fight over the write lock.
    Raise it only with a store that handles concurrent writers.
    """

    concurrency: int = Field(default=1, ge=1)
    max_retries: int = Field(default=2, ge=0)
    retry_delay: float = Field(default=2.0, ge=0)
    inter_item_delay: float = Field(default=0.5, ge=0)
    dedup_window: float = Field(default=300.0, ge=0)
    refresh_metadata: bool = False
    download_new_chapters: bool = False
    only_update_ongoing: bool = False
    progress_interval: float = Field(default=0.25, ge=0)
    progress_delta: float = Field(default=0.05, gt=0, le=1)


class SearchSettings(BaseModel):
    """Global search settings."""

    concurrency: int = Field(default=1, ge=1)
    debounce: float = Field(default=0.3, ge=0)
    focus_poll_interval: float = Field(default=0.25, gt=0)
    has_results_only: bool = False


class QueueSettings(BaseModel):
    """Background task queue settings."""

    store_key: str = "APP_SERVICE_TASK_QUEUE"
    update_library_on_launch: bool = False


class BackupSettings(BaseModel):
    """Automatic local backup settings."""

    auto_backup_enabled: bool = False
    auto_backup_target_uri: str | None = None
    auto_backup_interval_hours: int = Field(default=24, ge=1)
    auto_backup_check_interval: float = Field(default=60.0, gt=0)


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="NOVELSYNC_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "novelsync"
    app_env: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    backup: BackupSettings = Field(default_factory=BackupSettings)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance (read from env once)."""
    return Settings()
