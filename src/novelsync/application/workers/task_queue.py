"""Task Queue - persisted FIFO of background tasks with one runner.

Hey future me - this is the heart of background work! Everything long-running (library
update, backups, chapter downloads) goes through here, one task at a time.

ARCHITECTURE:
```
host --> add_task() --> memory list --> snapshot --> key-value store (one JSON value)
                              |
                              v
                      runner (single asyncio.Task)
                              |
                              v
             handler(payload, set_meta) --> set_meta --> listeners (UI)
```

RULES:
1. Exactly one runner at a time, tasks NEVER run concurrently with each other.
2. Every mutation publishes a full snapshot to listeners and persists it.
3. A failing handler is logged, notified and dropped. No automatic re-enqueue.
4. pause()/stop() never preempt a running handler, the runner just exits after it.
5. On restart, restore() reloads the snapshot; tasks that were running are reset.
"""

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

from novelsync.application.services.notification_service import NotificationService
from novelsync.domain.entities import (
    QueuedTask,
    Task,
    TaskKind,
    TaskMetadata,
    TaskPayload,
    describe_task,
)
from novelsync.domain.exceptions import ConfigurationError, classify_error, get_error_message
from novelsync.domain.ports import IKeyValueStore, MetaTransform, TaskHandler
from novelsync.infrastructure.observability.logging import task_id_var

logger = logging.getLogger(__name__)

DEFAULT_STORE_KEY = "APP_SERVICE_TASK_QUEUE"

QueueSnapshot = tuple[QueuedTask, ...]
QueueListener = Callable[[QueueSnapshot], None]


class TaskQueue:
    """Persisted, crash-resilient FIFO task queue.

    Example:
        queue = TaskQueue(kv_store, build_task_handlers(...), notifications)
        await queue.restore()
        task_id = await queue.add_task(TaskKind.UPDATE_LIBRARY, UpdateLibraryPayload())
        queue.pause()
    """

    def __init__(
        self,
        kv_store: IKeyValueStore,
        handlers: Mapping[TaskKind, TaskHandler],
        notifications: NotificationService | None = None,
        store_key: str = DEFAULT_STORE_KEY,
    ) -> None:
        """Initialize the queue.

        Args:
            kv_store: Where the queue snapshot is persisted
            handlers: One handler per TaskKind, must cover every kind
            notifications: Where handler failures are reported
            store_key: Key of the snapshot in kv_store

        Raises:
            ConfigurationError: If a TaskKind has no handler
        """
        missing = [kind.value for kind in TaskKind if kind not in handlers]
        if missing:
            raise ConfigurationError(f"No task handler registered for: {', '.join(missing)}")

        self._kv_store = kv_store
        self._handlers = dict(handlers)
        self._notifications = notifications
        self._store_key = store_key

        self._tasks: list[QueuedTask] = []
        self._current: QueuedTask | None = None
        self._runner: asyncio.Task[None] | None = None
        self._paused = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._listeners: list[QueueListener] = []

        # Persistence: writes are serialized and coalesced. A write always stores the
        # snapshot as it is at write time, so skipping intermediate states is safe.
        self._persist_lock = asyncio.Lock()
        self._dirty = False
        self._flush_task: asyncio.Task[None] | None = None

        self._stats = {"added": 0, "completed": 0, "failed": 0, "removed": 0, "restored": 0}

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def is_running(self) -> bool:
        """True while a handler invocation is in flight."""
        return self._current is not None

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def store_key(self) -> str:
        return self._store_key

    def get_task_list(self) -> QueueSnapshot:
        return self._snapshot()

    def has_task(self, kind: TaskKind) -> bool:
        return any(queued.kind == kind for queued in self._tasks)

    def is_kind_running(self, kind: TaskKind) -> bool:
        """E.g. is_kind_running(TaskKind.UPDATE_LIBRARY) = "is the library updating"."""
        return any(queued.kind == kind and queued.meta.is_running for queued in self._tasks)

    def subscribe(self, listener: QueueListener) -> Callable[[], None]:
        """Register a snapshot listener. Returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_until_idle(self) -> None:
        """Wait until no runner is active (queue empty or paused)."""
        await self._idle.wait()

    def get_stats(self) -> dict[str, Any]:
        return {
            **self._stats,
            "queued": len(self._tasks),
            "paused": self._paused,
            "running": self._current.id if self._current else None,
        }

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def add_task(
        self,
        kind: TaskKind,
        payload: TaskPayload | None = None,
        display_name: str | None = None,
    ) -> str:
        """Append a task and start the runner if it is idle.

        Awaits only the snapshot write, never the task itself. A failed write is logged
        and retried with the next one; the task is queued either way, so callers must
        not retry add_task() on their own.

        Returns:
            The new task id
        """
        task = Task.create(kind, payload)
        meta = TaskMetadata(display_name=display_name or describe_task(task.kind, task.payload))
        self._tasks.append(QueuedTask(task=task, meta=meta))
        self._stats["added"] += 1
        logger.debug(f"Enqueued task {task.id} ({task.kind.value})")

        self._publish()
        self._ensure_runner()
        await self._flush()
        return task.id

    async def remove_task(self, task_id: str) -> bool:
        """Remove a task by id. Removing an unknown id is a no-op.

        Hey future me - removing the RUNNING task only detaches it from the list: its
        handler keeps going to completion, its set_meta calls just stop being published.

        Returns:
            True if something was removed
        """
        if not self._remove(task_id):
            return False
        self._stats["removed"] += 1
        if self._current is not None and self._current.id == task_id:
            logger.info(f"Detached running task {task_id}, it will finish in the background")
        self._publish()
        await self._flush()
        return True

    async def clear(self) -> None:
        """Remove every task that is not currently running."""
        self._tasks = [queued for queued in self._tasks if queued is self._current]
        self._publish()
        await self._flush()

    def pause(self) -> None:
        """Stop dequeuing after the in-flight handler finishes."""
        if not self._paused:
            logger.info("Task queue paused")
        self._paused = True

    def resume(self) -> None:
        """Allow dequeuing again, starting a runner if there is work."""
        if self._paused:
            logger.info("Task queue resumed")
        self._paused = False
        self._ensure_runner()

    def stop(self) -> None:
        """Same as pause() for the runner; queued tasks are kept."""
        self.pause()

    async def shutdown(self) -> None:
        """Stop, let the in-flight handler finish and write the final snapshot."""
        self.stop()
        runner = self._runner
        if runner is not None:
            await runner
        await self._persist()

    async def restore(self) -> int:
        """Load the persisted snapshot (call once at startup).

        Tasks marked running were interrupted by a process death; they are reset to
        not running and will run again from the start.

        Returns:
            Number of restored tasks
        """
        raw = await self._kv_store.get(self._store_key)
        if not raw:
            return 0

        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Discarding unreadable task queue snapshot: {e}")
            return 0

        known = {queued.id for queued in self._tasks}
        restored: list[QueuedTask] = []
        for item in items if isinstance(items, list) else []:
            try:
                queued = QueuedTask.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Dropping invalid task from snapshot: {e}")
                continue
            if queued.id in known:
                continue
            if queued.meta.is_running:
                logger.warning(f"Task {queued.id} ({queued.kind.value}) was interrupted, resetting")
                queued.meta = replace(queued.meta, is_running=False)
            restored.append(queued)

        self._tasks = restored + self._tasks
        self._stats["restored"] += len(restored)
        if restored:
            logger.info(f"Restored {len(restored)} task(s) from snapshot")

        self._publish()
        await self._flush()
        self._ensure_runner()
        return len(restored)

    # =========================================================================
    # RUNNER
    # =========================================================================

    def _ensure_runner(self) -> None:
        if self._paused or not self._tasks:
            return
        if self._runner is not None and not self._runner.done():
            return
        self._idle.clear()
        self._runner = asyncio.create_task(self._run(), name="task-queue-runner")

    async def _run(self) -> None:
        try:
            while not self._paused and self._tasks:
                await self._execute(self._tasks[0])
        finally:
            self._runner = None
            self._idle.set()

    async def _execute(self, queued: QueuedTask) -> None:
        task = queued.task
        handler = self._handlers[task.kind]

        def set_meta(transform: MetaTransform) -> None:
            self._apply_meta(queued, transform)

        token = task_id_var.set(task.id)
        self._current = queued
        logger.info(f"Task started: {queued.meta.display_name} ({task.kind.value})")
        try:
            self._apply_meta(queued, lambda m: replace(m, is_running=True))
            await handler(task.payload, set_meta)
            self._stats["completed"] += 1
            logger.info(f"Task finished: {queued.meta.display_name}")
        except Exception as e:
            self._stats["failed"] += 1
            message = get_error_message(classify_error(e))
            logger.error(
                f"Task failed: {queued.meta.display_name}: {message}", exc_info=True
            )
            if self._notifications is not None:
                await self._notifications.notify_task_failed(queued.meta.display_name, message)
        finally:
            task_id_var.reset(token)
            self._current = None
            self._remove(task.id)
            self._publish()
            await self._flush()

    # =========================================================================
    # STATE + PERSISTENCE
    # =========================================================================

    def _remove(self, task_id: str) -> bool:
        for index, queued in enumerate(self._tasks):
            if queued.id == task_id:
                del self._tasks[index]
                return True
        return False

    def _apply_meta(self, queued: QueuedTask, transform: MetaTransform) -> None:
        queued.meta = transform(queued.meta)
        # Detached (removed while running) tasks keep their meta private.
        if any(item is queued for item in self._tasks):
            self._publish()
            self._schedule_flush()

    def _snapshot(self) -> QueueSnapshot:
        return tuple(QueuedTask(task=queued.task, meta=queued.meta) for queued in self._tasks)

    def _publish(self) -> None:
        self._dirty = True
        snapshot = self._snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Task queue listener failed")

    def _schedule_flush(self) -> None:
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.create_task(self._flush(), name="task-queue-flush")

    async def _flush(self) -> None:
        # Snapshot writes never raise into the runner or into add/remove/clear/restore.
        # Memory stays authoritative and the snapshot stays dirty for the next write.
        try:
            await self._persist()
        except Exception as e:
            logger.error(f"Failed to persist task queue snapshot: {e}")

    async def _persist(self) -> None:
        async with self._persist_lock:
            while self._dirty:
                self._dirty = False
                data = json.dumps([queued.to_dict() for queued in self._tasks])
                try:
                    await self._kv_store.set(self._store_key, data)
                except Exception:
                    self._dirty = True
                    raise
