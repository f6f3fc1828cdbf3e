"""Configuration module for novelsync."""

from .settings import (
    BackupSettings,
    DatabaseSettings,
    NetworkSettings,
    QueueSettings,
    SearchSettings,
    Settings,
    SyncSettings,
    get_settings,
)

__all__ = [
    "BackupSettings",
    "DatabaseSettings",
    "NetworkSettings",
    "QueueSettings",
    "SearchSettings",
    "Settings",
    "SyncSettings",
    "get_settings",
]
