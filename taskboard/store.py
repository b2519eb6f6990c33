from __future__ import annotations

import datetime as _dt
import threading
from collections.abc import Callable

from taskboard.errors import InvalidTaskError
from taskboard.models.task import Task, TaskPriority, TaskStatus, sort_tasks
from taskboard.observability import get_json_logger, get_metrics
from taskboard.validation import CreateTaskRequest

Clock = Callable[[], _dt.datetime]


def _utc_now() -> _dt.datetime:
    return _dt.datetime.now(_dt.UTC)


class TaskStore:
    """Task store interface.

    Implementations own the collection outright. Listing always returns tasks
    ordered by priority rank, then creation time.
    """

    def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        title: str | None = None,
    ) -> list[Task]:  # pragma: no cover - interface only
        raise NotImplementedError

    def create_task(self, request: CreateTaskRequest) -> Task:  # pragma: no cover - interface only
        raise NotImplementedError

    def clear_all(self) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


class InMemoryTaskStore(TaskStore):
    """Process-local task store.

    Data structures:
    - Insertion-ordered dict of task id -> Task
    - Re-entrant lock around the duplicate-title check and insert, since
      uvicorn may call into the store from worker threads
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._tasks: dict[str, Task] = {}
        self._lock = threading.RLock()
        self._clock: Clock = clock or _utc_now
        self._logger = get_json_logger("taskboard.store")

    def count(self) -> int:
        with self._lock:
            return len(self._tasks)

    def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        title: str | None = None,
    ) -> list[Task]:
        # Title matching is case-insensitive; it backs the uniqueness check.
        wanted_title = title.lower() if title is not None else None
        with self._lock:
            snapshot = list(self._tasks.values())
        matches = [
            t
            for t in snapshot
            if (status is None or t.status == status)
            and (priority is None or t.priority == priority)
            and (wanted_title is None or t.title.lower() == wanted_title)
        ]
        return sort_tasks(matches)

    def create_task(self, request: CreateTaskRequest) -> Task:
        metrics = get_metrics()
        with self._lock:
            now = self._clock()
            if request.due_date is not None and request.due_date < now:
                metrics.increment("task_create_rejected", {"reason": "due_date_in_past"})
                raise InvalidTaskError("Due date cannot be in the past")
            if self.list_tasks(title=request.title):
                metrics.increment("task_create_rejected", {"reason": "duplicate_title"})
                raise InvalidTaskError("A task with the same title already exists")
            task = Task(
                title=request.title,
                description=request.description,
                priority=request.priority,
                status=TaskStatus.PENDING,
                created_at=now,
                updated_at=now,
                due_date=request.due_date,
            )
            self._tasks[task.id] = task
        metrics.increment("tasks_created", {"priority": task.priority.value})
        self._logger.info(
            "task created",
            extra={
                "event": "task_created",
                "task_id": task.id,
                "attributes": {"priority": task.priority.value, "has_due_date": bool(task.due_date)},
            },
        )
        return task

    def clear_all(self) -> None:
        with self._lock:
            removed = len(self._tasks)
            self._tasks.clear()
        get_metrics().increment("tasks_cleared", amount=removed)
        self._logger.info(
            "tasks cleared",
            extra={"event": "tasks_cleared", "attributes": {"removed": removed}},
        )


__all__ = ["Clock", "InMemoryTaskStore", "TaskStore"]
