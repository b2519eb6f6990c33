from __future__ import annotations

import datetime as dt
import threading

import pytest

from taskboard.errors import InvalidTaskError
from taskboard.models.task import TaskPriority, TaskStatus
from taskboard.observability import get_metrics
from taskboard.store import InMemoryTaskStore
from taskboard.validation import CreateTaskRequest
from tests.helpers.clock import FakeClock


def _req(title: str, priority: str = "medium", **extra: object) -> CreateTaskRequest:
    return CreateTaskRequest.model_validate({"title": title, "priority": priority, **extra})


def test_create_sets_pending_status_and_equal_timestamps(
    store: InMemoryTaskStore, clock: FakeClock
) -> None:
    task = store.create_task(_req("Write tests", "high", description="cover the store"))

    assert task.id
    assert task.status is TaskStatus.PENDING
    assert task.created_at == task.updated_at == clock.now
    assert task.description == "cover the store"
    assert store.list_tasks() == [task]


def test_create_assigns_unique_ids(store: InMemoryTaskStore, clock: FakeClock) -> None:
    ids = set()
    for i in range(20):
        ids.add(store.create_task(_req(f"task {i}")).id)
        clock.advance()
    assert len(ids) == 20
    assert store.count() == 20


def test_duplicate_title_is_rejected_case_insensitively(store: InMemoryTaskStore) -> None:
    store.create_task(_req("Buy Milk"))

    with pytest.raises(InvalidTaskError) as excinfo:
        store.create_task(_req("bUY mILK", "low"))

    assert excinfo.value.message == "A task with the same title already exists"
    assert excinfo.value.code == "InvalidTaskError"
    assert store.count() == 1
    assert get_metrics().value("task_create_rejected", {"reason": "duplicate_title"}) == 1


def test_past_due_date_is_rejected(store: InMemoryTaskStore, clock: FakeClock) -> None:
    yesterday = (clock.now - dt.timedelta(days=1)).isoformat()

    with pytest.raises(InvalidTaskError) as excinfo:
        store.create_task(_req("Too late", dueDate=yesterday))

    assert excinfo.value.message == "Due date cannot be in the past"
    assert store.count() == 0


def test_due_date_check_runs_before_title_check(store: InMemoryTaskStore, clock: FakeClock) -> None:
    store.create_task(_req("Same"))
    past = (clock.now - dt.timedelta(seconds=1)).isoformat()

    with pytest.raises(InvalidTaskError, match="Due date cannot be in the past"):
        store.create_task(_req("same", dueDate=past))


def test_due_date_equal_to_now_or_later_is_accepted(
    store: InMemoryTaskStore, clock: FakeClock
) -> None:
    now_task = store.create_task(_req("Now", dueDate=clock.now.isoformat()))
    later = clock.now + dt.timedelta(days=3)
    later_task = store.create_task(_req("Later", dueDate=later.isoformat()))

    assert now_task.due_date == clock.now
    assert later_task.due_date == later


def test_list_sorts_by_priority_then_creation(store: InMemoryTaskStore, clock: FakeClock) -> None:
    a = store.create_task(_req("A", "low"))
    clock.advance()
    b = store.create_task(_req("B", "high"))
    clock.advance()
    c = store.create_task(_req("C", "low"))
    clock.advance()
    d = store.create_task(_req("D", "medium"))

    assert [t.id for t in store.list_tasks()] == [b.id, d.id, a.id, c.id]


def test_list_keeps_creation_order_for_identical_timestamps(store: InMemoryTaskStore) -> None:
    first = store.create_task(_req("first", "low"))
    second = store.create_task(_req("second", "low"))

    assert [t.id for t in store.list_tasks()] == [first.id, second.id]


def test_list_filters_and_intersections(store: InMemoryTaskStore, clock: FakeClock) -> None:
    store.create_task(_req("A", "low"))
    clock.advance()
    store.create_task(_req("B", "high"))

    assert store.list_tasks(status=TaskStatus.COMPLETED) == []
    assert [t.title for t in store.list_tasks(status=TaskStatus.PENDING)] == ["B", "A"]
    assert [t.title for t in store.list_tasks(priority=TaskPriority.LOW)] == ["A"]
    assert [
        t.title for t in store.list_tasks(status=TaskStatus.PENDING, priority=TaskPriority.HIGH)
    ] == ["B"]
    assert store.list_tasks(status=TaskStatus.IN_PROGRESS, priority=TaskPriority.HIGH) == []


def test_list_title_filter_is_case_insensitive_exact_match(store: InMemoryTaskStore) -> None:
    store.create_task(_req("Plan Sprint"))

    assert [t.title for t in store.list_tasks(title="plan sprint")] == ["Plan Sprint"]
    assert store.list_tasks(title="plan") == []


def test_clear_all_empties_collection(store: InMemoryTaskStore, clock: FakeClock) -> None:
    for name in ("x", "y", "z"):
        store.create_task(_req(name))
        clock.advance()

    store.clear_all()

    assert store.list_tasks() == []
    assert store.count() == 0
    assert get_metrics().value("tasks_cleared") == 3
    # Titles become available again
    store.create_task(_req("x"))
    assert store.count() == 1


def test_clear_all_on_empty_store_is_a_noop(store: InMemoryTaskStore) -> None:
    store.clear_all()
    assert store.list_tasks() == []


def test_concurrent_creates_with_same_title_admit_one() -> None:
    store = InMemoryTaskStore()
    workers = 8
    barrier = threading.Barrier(workers)
    results: list[str] = []
    results_lock = threading.Lock()

    def _create(i: int) -> None:
        barrier.wait()
        try:
            store.create_task(_req("Shared" if i % 2 else "SHARED"))
            outcome = "ok"
        except InvalidTaskError:
            outcome = "rejected"
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=_create, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("rejected") == workers - 1
    assert store.count() == 1


def test_title_comparison_uses_simple_lowercasing(store: InMemoryTaskStore) -> None:
    store.create_task(_req("Straße"))
    # Full case folding would map this to "strasse"; plain lowercasing does not.
    store.create_task(_req("STRASSE"))
    assert store.count() == 2

    with pytest.raises(InvalidTaskError):
        store.create_task(_req("STRAßE"))
