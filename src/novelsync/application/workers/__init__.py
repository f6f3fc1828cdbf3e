"""Worker system - task queue, its handlers and periodic workers."""

from novelsync.application.workers.auto_backup_worker import (
    AUTO_BACKUP_LAST_RUN_KEY,
    AutoBackupWorker,
    create_auto_backup_worker,
)
from novelsync.application.workers.handlers import build_task_handlers
from novelsync.application.workers.task_queue import DEFAULT_STORE_KEY, TaskQueue

__all__ = [
    "AUTO_BACKUP_LAST_RUN_KEY",
    "DEFAULT_STORE_KEY",
    "AutoBackupWorker",
    "TaskQueue",
    "build_task_handlers",
    "create_auto_backup_worker",
]
