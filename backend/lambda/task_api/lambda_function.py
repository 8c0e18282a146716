"""task_api/lambda_function.py

Lambda API handler for the tasks table.
Lists, creates and deletes task records stored in DynamoDB.

Routes (via API Gateway proxy, REST or HTTP API payloads):
    GET    /tasks                      — list tasks ({tasks, count}); ?limit=&cursor= pages
    POST   /tasks                      — create a task ({title, taskId?, completed?})
    DELETE /tasks                      — delete all tasks (best effort)
    GET    /tasks/{taskId}             — fetch a single task
    DELETE /tasks/{taskId}             — delete a single task
    OPTIONS /tasks[/*]                 — CORS preflight

Environment variables:
    TASKS_TABLE          default: TasksTable
    DYNAMODB_REGION      default: us-west-2
    CORS_ORIGIN          default: *
    API_BASE_PATH        default: "" (e.g. /prod when the stage is in the path)
    DEFAULT_PAGE_SIZE    default: 50
    MAX_PAGE_SIZE        default: 500
    DELETE_MAX_WORKERS   default: 8
    LOG_LEVEL            default: INFO
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from task_service.aws_clients import _get_ddb
from task_service.config import TASKS_TABLE
from task_service.handlers import TaskRequestHandler
from task_service.http_utils import _error
from task_service.record_store import DynamoRecordStore, RecordStore
from task_service.repository import TaskRepository
from task_service.serialization import _emit_structured_observability

logger = logging.getLogger()

# ---------------------------------------------------------------------------
# Process-lifetime wiring
# ---------------------------------------------------------------------------

_handler: Optional[TaskRequestHandler] = None


def build_handler(store: Optional[RecordStore] = None) -> TaskRequestHandler:
    """Wire store -> repository -> handler. Defaults to the DynamoDB table."""
    if store is None:
        store = DynamoRecordStore(_get_ddb(), TASKS_TABLE)
    return TaskRequestHandler(TaskRepository(store))


def _get_handler() -> TaskRequestHandler:
    global _handler
    if _handler is None:
        _handler = build_handler()
    return _handler


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Main Lambda entry point."""
    started = time.time()
    request_id = str(getattr(context, "aws_request_id", "") or "")
    try:
        resp = _get_handler().handle(event)
    except Exception as exc:
        logger.error("Unexpected error: %s", exc, exc_info=True)
        resp = _error(500, "Internal server error")

    _emit_structured_observability(
        event="request_completed",
        request_id=request_id,
        latency_ms=int((time.time() - started) * 1000),
        error_code="" if resp["statusCode"] < 500 else "INTERNAL_ERROR",
        extra={"status_code": resp["statusCode"]},
    )
    return resp
