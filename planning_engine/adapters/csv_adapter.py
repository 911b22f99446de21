"""CSV adapter for task records."""

from __future__ import annotations

import csv
from datetime import datetime
from typing import Optional

from planning_engine.schema import PRIORITIES, STATUSES, Task

_REQUIRED_FIELDS = {"id", "title"}


def _optional_int(raw: Optional[str], name: str, row_number: int) -> Optional[int]:
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Row {row_number}: invalid {name}") from exc


def _parse_row(row: dict, row_number: int) -> Task:
    missing = sorted(field for field in _REQUIRED_FIELDS if not row.get(field))
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    priority = (row.get("priority") or "medium").strip()
    if priority not in PRIORITIES:
        raise ValueError(f"Row {row_number}: invalid priority '{priority}'")

    status = (row.get("status") or "todo").strip()
    if status not in STATUSES:
        raise ValueError(f"Row {row_number}: invalid status '{status}'")

    due_raw = row.get("due_date")
    due_date = None
    if due_raw not in (None, ""):
        try:
            due_date = datetime.fromisoformat(due_raw.strip())
        except ValueError as exc:
            raise ValueError(f"Row {row_number}: malformed due_date") from exc

    category_raw = row.get("category")
    return Task(
        id=row["id"].strip(),
        title=row["title"].strip(),
        priority=priority,
        status=status,
        category=category_raw.strip() if category_raw else None,
        due_date=due_date,
        estimated_duration=_optional_int(row.get("estimated_duration"), "estimated_duration", row_number),
        subtask_count=_optional_int(row.get("subtask_count"), "subtask_count", row_number) or 0,
        description_length=len(row.get("description") or ""),
    )


def parse(file_path: str) -> list[Task]:
    """Parse CSV file into a list of tasks."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        tasks: list[Task] = []
        for row_number, row in enumerate(reader, start=2):
            tasks.append(_parse_row(row, row_number))
        return tasks
