"""handlers.py — Request handler: route resolution, repository calls, response shaping.

Routes:
    GET    /tasks              list tasks (optionally paged: ?limit=&cursor=)
    POST   /tasks              create a task
    DELETE /tasks              delete all tasks (best effort)
    GET    /tasks/{taskId}     fetch one task
    DELETE /tasks/{taskId}     delete one task

Repository errors are decoded here and nowhere else.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type
from urllib.parse import unquote

from task_service.config import API_BASE_PATH, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from task_service.errors import ConflictError, NotFound, StoreError, TaskServiceError, ValidationError
from task_service.http_utils import _error, _json_body, _path_method, _preflight, _query_params, _response
from task_service.repository import TaskRepository
from task_service.router import MethodNotAllowed, Route, RouteNotFound, Router
from task_service.serialization import _emit_metric

__all__ = [
    "TaskRequestHandler",
]

logger = logging.getLogger(__name__)

_ERROR_STATUS: Dict[Type[TaskServiceError], int] = {
    ValidationError: 400,
    NotFound: 404,
    ConflictError: 409,
    StoreError: 500,
}


def _status_for(exc: TaskServiceError) -> int:
    for cls in type(exc).__mro__:
        if cls in _ERROR_STATUS:
            return _ERROR_STATUS[cls]
    return 500


class TaskRequestHandler:
    def __init__(
        self,
        repository: TaskRepository,
        *,
        base_path: str = API_BASE_PATH,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._repo = repository
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self.router = Router(
            [
                Route("GET", "/tasks", self.list_tasks),
                Route("POST", "/tasks", self.create_task),
                Route("DELETE", "/tasks", self.delete_all_tasks),
                Route("GET", "/tasks", self.get_task, prefix=True),
                Route("DELETE", "/tasks", self.delete_task, prefix=True),
            ],
            base_path=base_path,
        )

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        method, path = _path_method(event)
        if method == "OPTIONS":
            return _preflight()

        logger.info("[INFO] route method=%s path=%s", method, path)
        resolution = self.router.resolve(method, path)

        if isinstance(resolution, MethodNotAllowed):
            return _error(
                405,
                "Method not allowed",
                headers={"Allow": ", ".join(resolution.allowed)},
                method=resolution.method,
                path=resolution.path,
                allowed=list(resolution.allowed),
            )
        if isinstance(resolution, RouteNotFound):
            return _error(404, "Route not found", method=resolution.method, path=resolution.path)

        try:
            return resolution.handler(event, **resolution.params)
        except TaskServiceError as exc:
            return self._error_response(exc)

    def _error_response(self, exc: TaskServiceError) -> Dict[str, Any]:
        status = _status_for(exc)
        if status >= 500:
            # Detail stays in the logs; clients get a generic message.
            logger.error("store failure: %s", exc, exc_info=True)
            return _error(status, "Internal server error")
        logger.info("request rejected: status=%d code=%s message=%s", status, exc.code, exc.message)
        return _error(status, exc.message, code=exc.code, **exc.details)

    # -----------------------------------------------------------------------
    # Route handlers
    # -----------------------------------------------------------------------

    def list_tasks(self, event: Dict[str, Any]) -> Dict[str, Any]:
        qs = _query_params(event)
        next_cursor: Optional[str] = None
        if "limit" in qs or "cursor" in qs:
            limit = self._parse_limit(qs.get("limit"))
            page = self._repo.list_tasks_page(limit, qs.get("cursor") or None)
            tasks, next_cursor = page.tasks, page.next_cursor
        else:
            tasks = self._repo.list_tasks()

        logger.info("tasks listed: count=%d", len(tasks))
        _emit_metric("TasksReturned", len(tasks))
        payload: Dict[str, Any] = {
            "tasks": [task.to_item() for task in tasks],
            "count": len(tasks),
        }
        if next_cursor:
            payload["next_cursor"] = next_cursor
        return _response(200, payload)

    def create_task(self, event: Dict[str, Any]) -> Dict[str, Any]:
        body = _json_body(event)
        task = self._repo.create_task(body)
        return _response(201, {"message": "Task created", "task": task.to_item()})

    def delete_all_tasks(self, event: Dict[str, Any]) -> Dict[str, Any]:
        result = self._repo.delete_all_tasks()
        if result.failed:
            return _response(200, {
                "message": "Some tasks could not be deleted",
                "count": result.deleted,
                "failed": result.failed,
            })
        return _response(200, {"message": "All tasks deleted", "count": result.deleted})

    def get_task(self, event: Dict[str, Any], tail: str) -> Dict[str, Any]:
        task = self._repo.get_task(unquote(tail))
        return _response(200, {"task": task.to_item()})

    def delete_task(self, event: Dict[str, Any], tail: str) -> Dict[str, Any]:
        task_id = unquote(tail)
        self._repo.delete_task(task_id)
        return _response(200, {"message": "Task deleted", "taskId": task_id})

    def _parse_limit(self, raw: Optional[str]) -> int:
        if raw in (None, ""):
            return self._default_page_size
        try:
            limit = int(raw)
        except (TypeError, ValueError):
            raise ValidationError("limit must be an integer.", details={"field": "limit"})
        if limit < 1 or limit > self._max_page_size:
            raise ValidationError(
                f"limit must be between 1 and {self._max_page_size}.",
                details={"field": "limit"},
            )
        return limit
