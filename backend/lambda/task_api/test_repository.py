"""Unit tests for TaskRepository over the in-memory record store."""

from __future__ import annotations

import os
import sys
import threading
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.dirname(__file__))

from task_service.errors import ConflictError, NotFound, RecordNotFound, StoreError, ValidationError
from task_service.record_store import InMemoryRecordStore
from task_service.repository import TaskRepository


class _FlakyDeleteStore(InMemoryRecordStore):
    """Fails deletion of the given keys with StoreError."""

    def __init__(self, failing=(), **kwargs):
        super().__init__(**kwargs)
        self.failing = set(failing)
        self.delete_calls = []
        self._calls_lock = threading.Lock()

    def delete_by_key(self, key):
        with self._calls_lock:
            self.delete_calls.append(key)
        if key in self.failing:
            raise StoreError(f"throttled deleting {key}")
        super().delete_by_key(key)


def _seed(repo, count):
    return [repo.create_task({"title": f"task {i}", "taskId": f"t-{i}"}) for i in range(count)]


def test_create_then_list_contains_exactly_one():
    repo = TaskRepository(InMemoryRecordStore())
    created = repo.create_task({"title": "Buy milk"})

    matches = [t for t in repo.list_tasks() if t.title == "Buy milk"]

    assert len(matches) == 1
    assert matches[0].task_id == created.task_id


def test_round_trip_defaults():
    repo = TaskRepository(InMemoryRecordStore())
    repo.create_task({"title": "Buy milk"})

    (task,) = repo.list_tasks()

    assert task.title == "Buy milk"
    assert task.completed is False
    assert task.created_at == task.updated_at
    assert task.created_at.endswith("Z")


def test_generated_ids_are_unique_and_random():
    repo = TaskRepository(InMemoryRecordStore())
    ids = {repo.create_task({"title": "same"}).task_id for _ in range(50)}

    assert len(ids) == 50
    assert all(len(task_id) == 32 for task_id in ids)


def test_supplied_id_and_completed_are_kept():
    repo = TaskRepository(InMemoryRecordStore())
    task = repo.create_task({"title": "x", "taskId": "abc-1", "completed": True})

    assert task.task_id == "abc-1"
    assert repo.get_task("abc-1").completed is True


def test_duplicate_id_conflicts_and_keeps_first():
    store = InMemoryRecordStore()
    repo = TaskRepository(store)
    repo.create_task({"title": "first", "taskId": "dup"})

    with pytest.raises(ConflictError):
        repo.create_task({"title": "second", "taskId": "dup"})

    assert len(store) == 1
    assert repo.get_task("dup").title == "first"


@pytest.mark.parametrize(
    "candidate",
    [
        {},
        {"title": ""},
        {"title": "   "},
        {"title": 42},
        {"title": "x" * 501},
        {"title": "ok", "completed": "yes"},
        {"title": "ok", "taskId": ""},
        {"title": "ok", "taskId": "has space"},
        {"title": "ok", "taskId": 7},
        {"title": "ok", "owner": "me"},
    ],
)
def test_invalid_candidates_never_reach_store(candidate):
    store = MagicMock()
    repo = TaskRepository(store)

    with pytest.raises(ValidationError):
        repo.create_task(candidate)

    store.put_if_absent.assert_not_called()


def test_null_task_id_means_generate():
    repo = TaskRepository(InMemoryRecordStore())
    task = repo.create_task({"title": "x", "taskId": None, "completed": None})

    assert task.task_id
    assert task.completed is False


def test_get_and_delete_missing_task():
    repo = TaskRepository(InMemoryRecordStore())

    with pytest.raises(NotFound):
        repo.get_task("missing")
    with pytest.raises(NotFound):
        repo.delete_task("missing")


def test_delete_task_removes_record():
    repo = TaskRepository(InMemoryRecordStore())
    _seed(repo, 2)

    repo.delete_task("t-0")

    assert [t.task_id for t in repo.list_tasks()] == ["t-1"]


def test_delete_all_tasks_empties_store():
    repo = TaskRepository(InMemoryRecordStore())
    _seed(repo, 7)

    result = repo.delete_all_tasks()

    assert result.deleted == 7
    assert result.failed == []
    assert repo.list_tasks() == []


def test_delete_all_on_empty_store():
    result = TaskRepository(InMemoryRecordStore()).delete_all_tasks()

    assert result.deleted == 0
    assert result.attempted == 0


def test_delete_all_reports_partial_failure_without_aborting():
    store = _FlakyDeleteStore(failing={"t-2"})
    repo = TaskRepository(store, delete_max_workers=3)
    _seed(repo, 6)

    result = repo.delete_all_tasks()

    assert result.deleted == 5
    assert result.failed == ["t-2"]
    assert sorted(store.delete_calls) == [f"t-{i}" for i in range(6)]
    assert [t.task_id for t in repo.list_tasks()] == ["t-2"]


def test_delete_all_issues_deletions_concurrently():
    width = 4
    barrier = threading.Barrier(width, timeout=5)

    class _RendezvousStore(InMemoryRecordStore):
        def delete_by_key(self, key):
            if key == "t-0":
                raise StoreError("throttled before rendezvous")
            # Only returns once `width` deletions are in flight together.
            barrier.wait()
            super().delete_by_key(key)

    store = _RendezvousStore()
    repo = TaskRepository(store, delete_max_workers=width)
    _seed(repo, width + 1)

    result = repo.delete_all_tasks()

    assert not barrier.broken
    assert result.deleted == width
    assert result.failed == ["t-0"]
    assert [t.task_id for t in repo.list_tasks()] == ["t-0"]


def test_delete_all_unexpected_error_keeps_tally():
    class _BuggyStore(InMemoryRecordStore):
        def delete_by_key(self, key):
            if key == "t-1":
                raise RuntimeError("driver bug")
            super().delete_by_key(key)

    repo = TaskRepository(_BuggyStore(), delete_max_workers=2)
    _seed(repo, 4)

    result = repo.delete_all_tasks()

    assert result.deleted == 3
    assert result.failed == ["t-1"]
    assert [t.task_id for t in repo.list_tasks()] == ["t-1"]


def test_delete_all_counts_vanished_records_as_skipped():
    class _RacingStore(InMemoryRecordStore):
        def delete_by_key(self, key):
            if key == "t-0":
                raise RecordNotFound(key)
            super().delete_by_key(key)

    store = _RacingStore()
    repo = TaskRepository(store)
    _seed(repo, 3)

    result = repo.delete_all_tasks()

    assert result.deleted == 2
    assert result.skipped == 1
    assert result.failed == []


def test_delete_all_scan_failure_propagates():
    store = MagicMock()
    store.key_name = "taskId"
    store.scan_all.side_effect = StoreError("scan failed")

    with pytest.raises(StoreError):
        TaskRepository(store).delete_all_tasks()
    store.delete_by_key.assert_not_called()


def test_list_page_invalid_cursor_is_validation_error():
    repo = TaskRepository(InMemoryRecordStore())

    with pytest.raises(ValidationError):
        repo.list_tasks_page(10, "%%%")


def test_list_page_walks_all_tasks():
    repo = TaskRepository(InMemoryRecordStore())
    _seed(repo, 5)

    first = repo.list_tasks_page(3)
    second = repo.list_tasks_page(3, first.next_cursor)

    assert len(first.tasks) == 3
    assert len(second.tasks) == 2
    assert second.next_cursor is None
    ids = [t.task_id for t in first.tasks + second.tasks]
    assert sorted(ids) == [f"t-{i}" for i in range(5)]
