from __future__ import annotations

import datetime as _dt
import functools
import uuid
from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Lower rank sorts first.
PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}


def _utc_now() -> _dt.datetime:
    return _dt.datetime.now(_dt.UTC)


class Task(BaseModel):
    """A unit of work held by the task store.

    - Status is always ``pending`` at creation; nothing transitions it
    - ``created_at`` and ``updated_at`` are equal at creation
    - Serialized with camelCase keys (``createdAt``, ``dueDate``...)
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: str | None = None
    priority: TaskPriority
    status: TaskStatus = TaskStatus.PENDING
    created_at: _dt.datetime = Field(default_factory=_utc_now, alias="createdAt")
    updated_at: _dt.datetime = Field(default_factory=_utc_now, alias="updatedAt")
    due_date: _dt.datetime | None = Field(default=None, alias="dueDate")

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def compare_by_priority(a: Task, b: Task) -> int:
    return PRIORITY_RANK[a.priority] - PRIORITY_RANK[b.priority]


def compare_by_creation_time(a: Task, b: Task) -> float:
    return (a.created_at - b.created_at).total_seconds()


def compare_by_priority_then_creation(a: Task, b: Task) -> float:
    # Equal priorities fall through to creation time.
    return compare_by_priority(a, b) or compare_by_creation_time(a, b)


def sort_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Return tasks in canonical list order; ties keep their input order."""
    return sorted(tasks, key=functools.cmp_to_key(compare_by_priority_then_creation))


__all__ = [
    "PRIORITY_RANK",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "compare_by_creation_time",
    "compare_by_priority",
    "compare_by_priority_then_creation",
    "sort_tasks",
]
