"""Background task domain model.

A Task is what the host asks the queue to do; a QueuedTask pairs it with the
metadata the queue publishes while the task waits or runs. Both serialize to plain
dicts because the whole queue is persisted as ONE JSON snapshot under a single key.
"""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4


# Hey future me - this enum is CLOSED. Adding a kind means adding a payload class,
# an entry in PAYLOAD_TYPES, a case in describe_task() and a handler in
# application/workers/handlers.py. TaskQueue refuses to start with a missing handler.
class TaskKind(StrEnum):
    """Every kind of background job the queue knows how to run."""

    UPDATE_LIBRARY = "UPDATE_LIBRARY"
    DOWNLOAD_CHAPTER = "DOWNLOAD_CHAPTER"
    LOCAL_BACKUP = "LOCAL_BACKUP"
    LOCAL_RESTORE = "LOCAL_RESTORE"
    DRIVE_BACKUP = "DRIVE_BACKUP"
    DRIVE_RESTORE = "DRIVE_RESTORE"


@dataclass(frozen=True)
class UpdateLibraryPayload:
    """Refresh the library, optionally limited to one category."""

    category_id: int | None = None


@dataclass(frozen=True)
class DownloadChapterPayload:
    chapter_id: int
    novel_name: str
    chapter_name: str


@dataclass(frozen=True)
class LocalBackupPayload:
    """Write a local backup archive.

    `silent` backups (the automatic ones) don't toast on success.
    """

    target_uri: str | None = None
    silent: bool = False


@dataclass(frozen=True)
class LocalRestorePayload:
    source_uri: str | None = None


@dataclass(frozen=True)
class DriveBackupPayload:
    folder_id: str
    folder_name: str


@dataclass(frozen=True)
class DriveRestorePayload:
    file_id: str
    file_name: str


TaskPayload = (
    UpdateLibraryPayload
    | DownloadChapterPayload
    | LocalBackupPayload
    | LocalRestorePayload
    | DriveBackupPayload
    | DriveRestorePayload
)

PAYLOAD_TYPES: dict[TaskKind, type] = {
    TaskKind.UPDATE_LIBRARY: UpdateLibraryPayload,
    TaskKind.DOWNLOAD_CHAPTER: DownloadChapterPayload,
    TaskKind.LOCAL_BACKUP: LocalBackupPayload,
    TaskKind.LOCAL_RESTORE: LocalRestorePayload,
    TaskKind.DRIVE_BACKUP: DriveBackupPayload,
    TaskKind.DRIVE_RESTORE: DriveRestorePayload,
}


def describe_task(kind: TaskKind, payload: TaskPayload) -> str:
    """Build the default display name shown for a queued task."""
    match payload:
        case UpdateLibraryPayload(category_id=None):
            return "Update library"
        case UpdateLibraryPayload(category_id=category_id):
            return f"Update category {category_id}"
        case DownloadChapterPayload(novel_name=novel_name, chapter_name=chapter_name):
            return f"Download: {novel_name} - {chapter_name}"
        case LocalBackupPayload():
            return "Local backup"
        case LocalRestorePayload():
            return "Local restore"
        case DriveBackupPayload(folder_name=folder_name):
            return f"Drive backup: {folder_name}"
        case DriveRestorePayload(file_name=file_name):
            return f"Drive restore: {file_name}"
    raise TypeError(f"Unsupported payload for {kind}: {type(payload).__name__}")


@dataclass(frozen=True)
class Task:
    """One unit of background work. Immutable once created."""

    id: str
    kind: TaskKind
    payload: TaskPayload
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        expected = PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind} expects {expected.__name__}, got {type(self.payload).__name__}"
            )

    @classmethod
    def create(cls, kind: TaskKind, payload: TaskPayload | None = None) -> "Task":
        """Create a task with a fresh id.

        Kinds whose payload has only optional fields may omit it.
        """
        kind = TaskKind(kind)
        if payload is None:
            payload = PAYLOAD_TYPES[kind]()
        return cls(id=str(uuid4()), kind=kind, payload=payload)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "payload": asdict(self.payload),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        kind = TaskKind(data["kind"])
        payload = PAYLOAD_TYPES[kind](**(data.get("payload") or {}))
        return cls(
            id=data["id"],
            kind=kind,
            payload=payload,
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass(frozen=True)
class TaskMetadata:
    """What the host renders for a queued task.

    Handlers never touch this directly; they pass a transform to set_meta() and the
    queue swaps the whole value, e.g. set_meta(lambda m: replace(m, progress=0.5)).
    """

    display_name: str
    is_running: bool = False
    progress: float | None = None  # 0.0 to 1.0, None when unknown
    progress_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskMetadata":
        return cls(
            display_name=data["display_name"],
            is_running=bool(data.get("is_running", False)),
            progress=data.get("progress"),
            progress_text=data.get("progress_text"),
        )


@dataclass
class QueuedTask:
    """A task plus its live metadata. Owned exclusively by TaskQueue."""

    task: Task
    meta: TaskMetadata

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def kind(self) -> TaskKind:
        return self.task.kind

    def to_dict(self) -> dict[str, Any]:
        return {"task": self.task.to_dict(), "meta": self.meta.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueuedTask":
        return cls(
            task=Task.from_dict(data["task"]),
            meta=TaskMetadata.from_dict(data["meta"]),
        )


__all__ = [
    "PAYLOAD_TYPES",
    "DownloadChapterPayload",
    "DriveBackupPayload",
    "DriveRestorePayload",
    "LocalBackupPayload",
    "LocalRestorePayload",
    "QueuedTask",
    "Task",
    "TaskKind",
    "TaskMetadata",
    "TaskPayload",
    "UpdateLibraryPayload",
    "describe_task",
]
