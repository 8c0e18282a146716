"""models.py — Task entity and its wire/record mapping."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Task:
    task_id: str
    title: str
    created_at: str
    updated_at: str
    completed: bool = False

    def to_item(self) -> Dict[str, Any]:
        """Wire/record form; DynamoDB attributes use the same names."""
        return {
            "taskId": self.task_id,
            "title": self.title,
            "completed": self.completed,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "Task":
        # Rows written by older handler revisions may lack the bookkeeping fields.
        created_at = str(item.get("createdAt") or "")
        return cls(
            task_id=str(item["taskId"]),
            title=str(item.get("title") or ""),
            completed=bool(item.get("completed", False)),
            created_at=created_at,
            updated_at=str(item.get("updatedAt") or created_at),
        )


@dataclass
class TaskPage:
    tasks: List[Task]
    next_cursor: Optional[str] = None


@dataclass
class BulkDeleteResult:
    """Outcome of a best-effort bulk delete.

    ``deleted`` counts confirmed deletions only. ``failed`` holds the ids whose
    deletion raised; ``skipped`` counts records already gone by the time their
    delete was issued.
    """

    deleted: int = 0
    failed: List[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def attempted(self) -> int:
        return self.deleted + len(self.failed) + self.skipped
