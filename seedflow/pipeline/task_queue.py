"""In-process background task queue for work deferred past ingestion.

Producers call :meth:`BackgroundTaskQueue.enqueue`, which records the task
and drops its id on an ``asyncio.Queue``; a fixed pool of worker coroutines
pulls ids off the queue and runs the handler registered for the task's
kind::

    enqueue() ──→ asyncio.Queue[task_id] ──→ worker × max_concurrent ──→ handler(task)

Tasks are indexed by owner (the seed id) so deleting a seed can cancel its
queued and running tasks in one synchronous sweep.  The sweep never awaits,
so nothing can be enqueued in the middle of it; a task enqueued afterwards
is kept.

Handler failures are logged and recorded on the task.  They never touch
the seed that owns the task.  Terminal tasks stay queryable for
``retention`` seconds and are then dropped from both indexes.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import structlog

from seedflow.models.task import BackgroundTask, TaskKind, TaskStatus
from seedflow.utils.errors import TaskQueueError
from seedflow.utils.logging import get_logger

TaskHandler = Callable[[BackgroundTask], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class BackgroundTaskQueue:
    """Bounded-concurrency task runner with owner-keyed cancellation.

    Parameters
    ----------
    max_concurrent:
        Number of worker coroutines, i.e. tasks running at once.
    task_timeout:
        Seconds a single attempt may run before it counts as failed.
    max_retries:
        Extra attempts granted to auto-generated tasks after a failure.
    retention:
        Seconds a finished, failed or cancelled task stays queryable before
        it is dropped from the task and owner indexes.
    """

    def __init__(
        self,
        max_concurrent: int = 3,
        task_timeout: float = 300.0,
        max_retries: int = 1,
        retention: float = 600.0,
    ) -> None:
        if max_concurrent < 1:
            raise TaskQueueError(message="max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._task_timeout = task_timeout
        self._max_retries = max_retries
        self._retention = retention

        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._tasks: dict[str, BackgroundTask] = {}
        self._by_owner: dict[str, set[str]] = {}
        self._running: dict[str, asyncio.Task] = {}
        self._handlers: dict[TaskKind, TaskHandler] = {}
        self._workers: list[asyncio.Task] = []
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def register_handler(self, kind: TaskKind, handler: TaskHandler) -> None:
        self._handlers[kind] = handler

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self._workers:
            return
        loop = asyncio.get_running_loop()
        self._workers = [
            loop.create_task(self._worker(index), name=f"task-worker-{index}")
            for index in range(self._max_concurrent)
        ]
        self._logger.info("task_queue_started", workers=self._max_concurrent)

    async def shutdown(self) -> None:
        """Stop the workers.  Running tasks are cancelled and marked so."""
        for task_id in list(self._running):
            self._mark_cancelled(task_id)
        for worker in self._workers:
            worker.cancel()
        for worker in self._workers:
            with contextlib.suppress(asyncio.CancelledError):
                await worker
        self._workers = []
        self._logger.info("task_queue_stopped", stats=self.stats())

    async def join(self) -> None:
        """Wait until every queued task has been processed."""
        await self._queue.join()

    # ------------------------------------------------------------------
    # Producer API
    # ------------------------------------------------------------------

    def enqueue(
        self,
        owner_id: str,
        user_id: str,
        kind: TaskKind = TaskKind.GENERATE_MATERIALS,
        payload: dict[str, Any] | None = None,
        auto_generated: bool = True,
    ) -> BackgroundTask:
        """Record a task and queue it.  Returns immediately.

        Raises
        ------
        TaskQueueError
            If no handler is registered for *kind*.
        """
        if kind not in self._handlers:
            raise TaskQueueError(message=f"No handler registered for {kind.value}")

        task = BackgroundTask(
            owner_id=owner_id,
            user_id=user_id,
            kind=kind,
            payload={**(payload or {}), "auto_generated": auto_generated},
        )
        self._tasks[task.id] = task
        self._by_owner.setdefault(owner_id, set()).add(task.id)
        self._queue.put_nowait(task.id)
        self._logger.info(
            "task_enqueued",
            task_id=task.id,
            owner_id=owner_id,
            kind=kind.value,
            queued=self._queue.qsize(),
        )
        return task

    def cancel_by_owner(self, owner_id: str) -> int:
        """Cancel every queued or running task owned by *owner_id*.

        Returns the number of tasks cancelled.
        """
        cancelled = 0
        for task_id in self._by_owner.get(owner_id, ()):
            task = self._tasks[task_id]
            if task.status.is_terminal:
                continue
            self._mark_cancelled(task_id)
            cancelled += 1

        if cancelled:
            self._logger.info("tasks_cancelled_for_owner", owner_id=owner_id, count=cancelled)
        return cancelled

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> BackgroundTask | None:
        return self._tasks.get(task_id)

    def tasks_for_owner(self, owner_id: str) -> list[BackgroundTask]:
        tasks = [self._tasks[task_id] for task_id in self._by_owner.get(owner_id, ())]
        return sorted(tasks, key=lambda task: task.created_at)

    def stats(self) -> dict[str, int]:
        counts = Counter(task.status.value for task in self._tasks.values())
        return {
            "queued": self._queue.qsize(),
            "running": len(self._running),
            **{status.value: counts.get(status.value, 0) for status in TaskStatus},
        }

    # ------------------------------------------------------------------
    # Worker internals
    # ------------------------------------------------------------------

    def _update(self, task_id: str, **fields: Any) -> BackgroundTask:
        task = self._tasks[task_id].model_copy(update=fields)
        self._tasks[task_id] = task
        return task

    def _mark_cancelled(self, task_id: str) -> None:
        if task_id in self._tasks:
            self._update(
                task_id,
                status=TaskStatus.CANCELLED,
                cancelled=True,
                finished_at=_utcnow(),
            )
            self._retire(task_id)
        running = self._running.get(task_id)
        if running is not None:
            running.cancel()

    def _retire(self, task_id: str) -> None:
        asyncio.get_running_loop().call_later(self._retention, self._forget, task_id)

    def _forget(self, task_id: str) -> None:
        task = self._tasks.pop(task_id, None)
        if task is None:
            return
        owned = self._by_owner.get(task.owner_id)
        if owned is not None:
            owned.discard(task_id)
            if not owned:
                del self._by_owner[task.owner_id]
        self._logger.debug("task_forgotten", task_id=task_id, owner_id=task.owner_id)

    async def _worker(self, index: int) -> None:
        while True:
            task_id = await self._queue.get()
            try:
                await self._process(task_id)
            except Exception as exc:
                self._logger.error(
                    "task_worker_error",
                    worker=index,
                    task_id=task_id,
                    error=str(exc),
                )
            finally:
                self._queue.task_done()

    async def _process(self, task_id: str) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.cancelled:
            return

        handler = self._handlers[task.kind]
        task = self._update(task_id, status=TaskStatus.RUNNING, attempts=task.attempts + 1)

        attempt = asyncio.get_running_loop().create_task(
            asyncio.wait_for(handler(task), timeout=self._task_timeout)
        )
        self._running[task_id] = attempt
        try:
            await asyncio.wait({attempt})
        except asyncio.CancelledError:
            attempt.cancel()
            raise
        finally:
            self._running.pop(task_id, None)

        current = self._tasks.get(task_id)
        if current is None or current.cancelled or attempt.cancelled():
            self._logger.info("task_cancelled", task_id=task_id, owner_id=task.owner_id)
            return

        exc = attempt.exception()
        if exc is None:
            self._update(task_id, status=TaskStatus.COMPLETED, finished_at=_utcnow())
            self._retire(task_id)
            self._logger.info(
                "task_completed",
                task_id=task_id,
                owner_id=task.owner_id,
                attempts=task.attempts,
            )
            return

        error = "timed out" if isinstance(exc, asyncio.TimeoutError) else str(exc)
        retries_left = task.payload.get("auto_generated", False) and (
            task.attempts <= self._max_retries
        )
        if retries_left:
            self._update(task_id, status=TaskStatus.PENDING, error=error)
            self._queue.put_nowait(task_id)
            self._logger.warning(
                "task_retry_scheduled",
                task_id=task_id,
                owner_id=task.owner_id,
                attempt=task.attempts,
                error=error,
            )
            return

        self._update(task_id, status=TaskStatus.FAILED, error=error, finished_at=_utcnow())
        self._retire(task_id)
        self._logger.error(
            "task_failed",
            task_id=task_id,
            owner_id=task.owner_id,
            attempts=task.attempts,
            error=error,
            error_type=type(exc).__name__,
        )
