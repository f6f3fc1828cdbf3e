"""Tests for AutoBackupWorker."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from novelsync.application.workers import AUTO_BACKUP_LAST_RUN_KEY, AutoBackupWorker
from novelsync.config import BackupSettings
from novelsync.domain.entities import LocalBackupPayload, TaskKind


@pytest.fixture
def task_queue() -> MagicMock:
    queue = MagicMock()
    queue.has_task = MagicMock(return_value=False)
    queue.add_task = AsyncMock(return_value="task-1")
    return queue


@pytest.fixture
def settings() -> BackupSettings:
    return BackupSettings(
        auto_backup_enabled=True,
        auto_backup_target_uri="/backups",
        auto_backup_interval_hours=24,
    )


@pytest.fixture
def worker(task_queue, kv_store, settings, clock) -> AutoBackupWorker:
    return AutoBackupWorker(task_queue, kv_store, settings, clock=clock, sleep=clock.sleep)


class TestCheckAndEnqueue:
    async def test_first_check_enqueues_silent_backup(self, worker, task_queue, kv_store, clock):
        assert await worker.check_and_enqueue() == "task-1"

        task_queue.add_task.assert_awaited_once_with(
            TaskKind.LOCAL_BACKUP, LocalBackupPayload(target_uri="/backups", silent=True)
        )
        assert float(kv_store.data[AUTO_BACKUP_LAST_RUN_KEY]) == clock.now

    async def test_not_due_before_interval(self, worker, task_queue, clock):
        await worker.check_and_enqueue()
        clock.advance(23 * 3600)

        assert await worker.check_and_enqueue() is None
        assert task_queue.add_task.await_count == 1

    async def test_due_after_interval(self, worker, task_queue, clock):
        await worker.check_and_enqueue()
        clock.advance(24 * 3600)

        assert await worker.check_and_enqueue() == "task-1"
        assert task_queue.add_task.await_count == 2

    async def test_skipped_when_backup_already_queued(self, worker, task_queue):
        task_queue.has_task.return_value = True

        assert await worker.check_and_enqueue() is None
        task_queue.has_task.assert_called_with(TaskKind.LOCAL_BACKUP)
        task_queue.add_task.assert_not_awaited()

    async def test_disabled(self, task_queue, kv_store, clock):
        worker = AutoBackupWorker(
            task_queue, kv_store, BackupSettings(auto_backup_target_uri="/b"), clock=clock
        )
        assert await worker.check_and_enqueue() is None
        task_queue.add_task.assert_not_awaited()

    async def test_enabled_without_target(self, task_queue, kv_store, clock):
        worker = AutoBackupWorker(
            task_queue, kv_store, BackupSettings(auto_backup_enabled=True), clock=clock
        )
        assert await worker.check_and_enqueue() is None

    async def test_invalid_last_run_value_counts_as_never(self, worker, task_queue, kv_store):
        kv_store.data[AUTO_BACKUP_LAST_RUN_KEY] = "yesterday"
        assert await worker.check_and_enqueue() == "task-1"


class TestLoop:
    async def test_start_runs_until_stopped(self, task_queue, kv_store, settings, clock):
        checks = 0

        async def sleep(seconds: float) -> None:
            nonlocal checks
            checks += 1
            if checks == 3:
                worker.stop()

        worker = AutoBackupWorker(task_queue, kv_store, settings, clock=clock, sleep=sleep)
        await worker.start()

        assert worker.get_stats()["checks"] == 3
        assert worker.get_stats()["running"] is False

    async def test_errors_do_not_end_the_loop(self, task_queue, kv_store, settings, clock):
        task_queue.add_task = AsyncMock(side_effect=[RuntimeError("db locked"), "task-2"])
        sleeps = 0

        async def sleep(seconds: float) -> None:
            nonlocal sleeps
            sleeps += 1
            if sleeps == 2:
                worker.stop()

        worker = AutoBackupWorker(task_queue, kv_store, settings, clock=clock, sleep=sleep)
        await worker.start()

        assert task_queue.add_task.await_count == 2
