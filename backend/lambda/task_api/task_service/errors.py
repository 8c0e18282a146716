"""errors.py — Typed error taxonomy for the task service.

Record-store signals (``RecordStoreError`` subclasses) describe what happened
to a key in the backing medium. The repository translates them into
``TaskServiceError`` subclasses, which the request handler maps to HTTP
statuses in one place.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "ConflictError",
    "InvalidCursor",
    "NotFound",
    "RecordAlreadyExists",
    "RecordNotFound",
    "RecordStoreError",
    "StoreError",
    "TaskServiceError",
    "ValidationError",
]


class TaskServiceError(Exception):
    """Base class for errors surfaced by the task repository."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})


class ValidationError(TaskServiceError):
    code = "INVALID_INPUT"


class ConflictError(TaskServiceError):
    code = "CONFLICT"


class NotFound(TaskServiceError):
    code = "NOT_FOUND"


class StoreError(TaskServiceError):
    """The backing medium is unreachable, throttled or rejected the call."""

    code = "INTERNAL_ERROR"


# ---------------------------------------------------------------------------
# Record store signals
# ---------------------------------------------------------------------------


class RecordStoreError(Exception):
    """Base class for key-level outcomes reported by a record store."""


class RecordAlreadyExists(RecordStoreError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Record already exists: {key}")
        self.key = key


class RecordNotFound(RecordStoreError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Record not found: {key}")
        self.key = key


class InvalidCursor(RecordStoreError):
    pass
