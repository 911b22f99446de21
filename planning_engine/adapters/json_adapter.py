"""JSON adapter for task records."""

from __future__ import annotations

import json
from datetime import datetime

from planning_engine.schema import PRIORITIES, STATUSES, Task

_REQUIRED_FIELDS = {"id", "title"}


def _parse_item(item: dict, index: int) -> Task:
    if not isinstance(item, dict):
        raise ValueError(f"Item {index}: expected an object")

    missing = sorted(field for field in _REQUIRED_FIELDS if not item.get(field))
    if missing:
        raise ValueError(f"Item {index}: missing required fields {missing}")

    priority = str(item.get("priority") or "medium").strip()
    if priority not in PRIORITIES:
        raise ValueError(f"Item {index}: invalid priority '{priority}'")

    status = str(item.get("status") or "todo").strip()
    if status not in STATUSES:
        raise ValueError(f"Item {index}: invalid status '{status}'")

    due_raw = item.get("due_date")
    due_date = None
    if due_raw is not None:
        try:
            due_date = datetime.fromisoformat(str(due_raw))
        except ValueError as exc:
            raise ValueError(f"Item {index}: malformed due_date") from exc

    duration_raw = item.get("estimated_duration")
    try:
        estimated_duration = int(duration_raw) if duration_raw is not None else None
        subtasks = item.get("subtasks")
        subtask_count = len(subtasks) if isinstance(subtasks, list) else int(item.get("subtask_count", 0))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Item {index}: invalid numeric field") from exc

    category_raw = item.get("category")
    return Task(
        id=str(item["id"]).strip(),
        title=str(item["title"]).strip(),
        priority=priority,
        status=status,
        category=str(category_raw).strip() if category_raw else None,
        due_date=due_date,
        estimated_duration=estimated_duration,
        subtask_count=subtask_count,
        description_length=len(str(item.get("description") or "")),
    )


def parse(file_path: str) -> list[Task]:
    """Parse JSON file into tasks."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of objects")

    return [_parse_item(item, i) for i, item in enumerate(payload, start=1)]
