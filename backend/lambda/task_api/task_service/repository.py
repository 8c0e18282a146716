"""repository.py — Task Repository: schema-aware layer over a RecordStore.

Validates task candidates, assigns ids and timestamps, and translates
record-store signals into the service error taxonomy. The store is injected;
the repository never constructs clients itself.
"""
from __future__ import annotations

import logging
import re
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Mapping, Optional

from task_service.config import DELETE_MAX_WORKERS, MAX_TASK_ID_LENGTH, MAX_TITLE_LENGTH
from task_service.errors import (
    ConflictError,
    InvalidCursor,
    NotFound,
    RecordAlreadyExists,
    RecordNotFound,
    StoreError,
    ValidationError,
)
from task_service.models import BulkDeleteResult, Task, TaskPage
from task_service.record_store import RecordStore
from task_service.serialization import _emit_metric, _now_z

__all__ = [
    "TaskRepository",
]

logger = logging.getLogger(__name__)

_TASK_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,%d}" % MAX_TASK_ID_LENGTH)
_CANDIDATE_FIELDS = {"taskId", "title", "completed"}


def _new_task_id() -> str:
    return uuid.uuid4().hex


class TaskRepository:
    def __init__(self, store: RecordStore, *, delete_max_workers: int = DELETE_MAX_WORKERS) -> None:
        self._store = store
        self._delete_max_workers = max(1, delete_max_workers)

    # -- reads --------------------------------------------------------------

    def list_tasks(self) -> List[Task]:
        """All tasks in store iteration order (not stable across calls)."""
        return [Task.from_item(record) for record in self._store.scan_all()]

    def list_tasks_page(self, limit: int, cursor: Optional[str] = None) -> TaskPage:
        try:
            records, next_cursor = self._store.scan_page(limit, cursor)
        except InvalidCursor as exc:
            raise ValidationError(str(exc), details={"field": "cursor"}) from exc
        return TaskPage(tasks=[Task.from_item(r) for r in records], next_cursor=next_cursor)

    def get_task(self, task_id: str) -> Task:
        record = self._store.get(task_id)
        if record is None:
            raise NotFound(f"Task not found: {task_id}", details={"taskId": task_id})
        return Task.from_item(record)

    # -- writes -------------------------------------------------------------

    def create_task(self, candidate: Mapping[str, Any]) -> Task:
        """Validate ``candidate`` and persist it as a new task.

        Raises ValidationError for bad input and ConflictError when the
        (supplied) taskId already exists. Existing records are never
        overwritten.
        """
        fields = self._validate_candidate(candidate)
        task_id = fields["taskId"] or _new_task_id()
        now = _now_z()
        task = Task(
            task_id=task_id,
            title=fields["title"],
            completed=fields["completed"],
            created_at=now,
            updated_at=now,
        )
        try:
            self._store.put_if_absent(task_id, task.to_item())
        except RecordAlreadyExists as exc:
            raise ConflictError(f"Task already exists: {task_id}", details={"taskId": task_id}) from exc

        logger.info("task created: %s", task_id)
        _emit_metric("TaskCreated", 1)
        return task

    def delete_task(self, task_id: str) -> None:
        try:
            self._store.delete_by_key(task_id)
        except RecordNotFound as exc:
            raise NotFound(f"Task not found: {task_id}", details={"taskId": task_id}) from exc
        logger.info("task deleted: %s", task_id)

    def delete_all_tasks(self) -> BulkDeleteResult:
        """Best-effort bulk delete: scan, then delete every record concurrently.

        Every deletion runs to completion; one failure never cancels the
        others. The result counts confirmed deletions only.
        """
        keys = [str(record[self._store.key_name]) for record in self._store.scan_all()]
        result = BulkDeleteResult()
        if not keys:
            return result

        with ThreadPoolExecutor(max_workers=min(len(keys), self._delete_max_workers)) as pool:
            futures = {pool.submit(self._store.delete_by_key, key): key for key in keys}
            for future in as_completed(futures):
                key = futures[future]
                try:
                    future.result()
                except RecordNotFound:
                    logger.info("bulk delete: %s already gone", key)
                    result.skipped += 1
                except StoreError as exc:
                    logger.warning("bulk delete failed for %s: %s", key, exc)
                    result.failed.append(key)
                except Exception as exc:
                    logger.error("bulk delete raised for %s: %s", key, exc, exc_info=True)
                    result.failed.append(key)
                else:
                    result.deleted += 1

        result.failed.sort()
        logger.info(
            "bulk delete finished: deleted=%d failed=%d skipped=%d",
            result.deleted, len(result.failed), result.skipped,
        )
        _emit_metric("TasksDeleted", result.deleted)
        if result.failed:
            _emit_metric("TaskDeleteFailed", len(result.failed))
        return result

    # -- validation ---------------------------------------------------------

    @staticmethod
    def _validate_candidate(candidate: Mapping[str, Any]) -> Dict[str, Any]:
        if not isinstance(candidate, Mapping):
            raise ValidationError("Task payload must be an object.")

        unknown = sorted(set(candidate) - _CANDIDATE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unsupported field(s): {', '.join(unknown)}",
                details={"fields": unknown},
            )

        title = candidate.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("title is required and must be a non-empty string.", details={"field": "title"})
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(
                f"title exceeds {MAX_TITLE_LENGTH} characters.",
                details={"field": "title"},
            )

        task_id = candidate.get("taskId")
        if task_id is not None:
            if not isinstance(task_id, str) or not _TASK_ID_RE.fullmatch(task_id):
                raise ValidationError(
                    "taskId must be 1-%d characters of letters, digits, '-' or '_'." % MAX_TASK_ID_LENGTH,
                    details={"field": "taskId"},
                )

        completed = candidate.get("completed", False)
        if completed is None:
            completed = False
        if not isinstance(completed, bool):
            raise ValidationError("completed must be a boolean.", details={"field": "completed"})

        return {"taskId": task_id, "title": title, "completed": completed}
