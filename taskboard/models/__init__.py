from .task import (
    PRIORITY_RANK,
    Task,
    TaskPriority,
    TaskStatus,
    compare_by_creation_time,
    compare_by_priority,
    compare_by_priority_then_creation,
    sort_tasks,
)

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
