"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from novelsync.config import NetworkSettings, Settings, SyncSettings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("NOVELSYNC_SYNC__CONCURRENCY", raising=False)
        settings = Settings()

        assert settings.app_name == "novelsync"
        assert settings.network.request_timeout == 5.0
        assert settings.sync.concurrency == 1
        assert settings.sync.max_retries == 2
        assert settings.sync.retry_delay == 2.0
        assert settings.sync.dedup_window == 300.0
        assert settings.queue.store_key == "APP_SERVICE_TASK_QUEUE"
        assert settings.queue.update_library_on_launch is False
        assert settings.backup.auto_backup_enabled is False

    def test_database_url_is_async_sqlite(self):
        assert Settings().database.url.startswith("sqlite+aiosqlite://")


class TestValidation:
    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValidationError):
            SyncSettings(concurrency=0)

    def test_negative_retries_rejected(self):
        with pytest.raises(ValidationError):
            SyncSettings(max_retries=-1)

    def test_progress_delta_upper_bound(self):
        with pytest.raises(ValidationError):
            SyncSettings(progress_delta=1.5)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            NetworkSettings(request_timeout=0)

    def test_app_env_is_restricted(self):
        with pytest.raises(ValidationError):
            Settings(app_env="staging")


class TestEnvironment:
    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("NOVELSYNC_SYNC__CONCURRENCY", "4")
        monkeypatch.setenv("NOVELSYNC_QUEUE__UPDATE_LIBRARY_ON_LAUNCH", "true")

        settings = Settings()

        assert settings.sync.concurrency == 4
        assert settings.queue.update_library_on_launch is True

    def test_top_level_env_override(self, monkeypatch):
        monkeypatch.setenv("NOVELSYNC_LOG_LEVEL", "DEBUG")
        assert Settings().log_level == "DEBUG"
