"""Core data schema shared by the planning modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

PRIORITIES = ("low", "medium", "high", "urgent")
STATUSES = ("todo", "in-progress", "completed", "archived")
ACTIVE_STATUSES = ("todo", "in-progress")
NOTIFICATION_KINDS = ("due_soon", "overdue", "reminder", "suggestion", "achievement")


@dataclass
class Task:
    """Task record owned by the external task store."""

    id: str
    title: str
    priority: str = "medium"
    status: str = "todo"
    category: Optional[str] = None
    due_date: Optional[datetime] = None
    estimated_duration: Optional[int] = None
    subtask_count: int = 0
    description_length: int = 0

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


@dataclass
class TaskSegment:
    """A scheduled block of work for a task on one day."""

    id: str
    task_id: str
    title: str
    start_time: datetime
    end_time: datetime
    duration: int
    color: str
    completed: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "title": self.title,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration,
            "color": self.color,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "TaskSegment":
        return cls(
            id=str(payload["id"]),
            task_id=str(payload["task_id"]),
            title=str(payload.get("title", "")),
            start_time=datetime.fromisoformat(payload["start_time"]),
            end_time=datetime.fromisoformat(payload["end_time"]),
            duration=int(payload["duration"]),
            color=str(payload.get("color", "")),
            completed=bool(payload.get("completed", False)),
        )


@dataclass
class TimeBlock:
    """All segments scheduled on a single calendar day."""

    id: str
    day: date
    segments: list[TaskSegment] = field(default_factory=list)


@dataclass
class Notification:
    """Notification record handed to the external notification store."""

    kind: str
    title: str
    message: str
    task_id: Optional[str] = None
    action_url: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind '{self.kind}'")
