"""Domain entities."""

from novelsync.domain.entities.library import LOCAL_PLUGIN_ID, SyncReport, SyncTarget
from novelsync.domain.entities.search import SearchSlot, SearchState
from novelsync.domain.entities.task import (
    PAYLOAD_TYPES,
    DownloadChapterPayload,
    DriveBackupPayload,
    DriveRestorePayload,
    LocalBackupPayload,
    LocalRestorePayload,
    QueuedTask,
    Task,
    TaskKind,
    TaskMetadata,
    TaskPayload,
    UpdateLibraryPayload,
    describe_task,
)

__all__ = [
    "LOCAL_PLUGIN_ID",
    "PAYLOAD_TYPES",
    "DownloadChapterPayload",
    "DriveBackupPayload",
    "DriveRestorePayload",
    "LocalBackupPayload",
    "LocalRestorePayload",
    "QueuedTask",
    "SearchSlot",
    "SearchState",
    "SyncReport",
    "SyncTarget",
    "Task",
    "TaskKind",
    "TaskMetadata",
    "TaskPayload",
    "UpdateLibraryPayload",
    "describe_task",
]
