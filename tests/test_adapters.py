import json
from datetime import datetime

import pytest

from planning_engine.adapters.csv_adapter import parse as parse_csv
from planning_engine.adapters.json_adapter import parse as parse_json


def test_csv_parse_success(tmp_path):
    path = tmp_path / "tasks.csv"
    path.write_text(
        "id,title,priority,status,category,due_date,estimated_duration,subtask_count,description\n"
        "a,Write report,high,todo,work,2025-01-01T09:00:00,90,2,Quarterly numbers\n"
        "b,Call mum,,,,,,,\n",
        encoding="utf-8",
    )
    tasks = parse_csv(str(path))
    assert len(tasks) == 2
    assert tasks[0].due_date == datetime(2025, 1, 1, 9, 0)
    assert tasks[0].estimated_duration == 90
    assert tasks[0].description_length == len("Quarterly numbers")
    assert tasks[1].priority == "medium"
    assert tasks[1].status == "todo"
    assert tasks[1].category is None


def test_csv_parse_invalid_row(tmp_path):
    path = tmp_path / "tasks.csv"
    path.write_text("id,title,due_date\na,Write report,bad\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Row 2"):
        parse_csv(str(path))


def test_csv_rejects_unknown_priority(tmp_path):
    path = tmp_path / "tasks.csv"
    path.write_text("id,title,priority\na,Write report,critical\n", encoding="utf-8")
    with pytest.raises(ValueError):
        parse_csv(str(path))


def test_json_parse_success(tmp_path):
    path = tmp_path / "tasks.json"
    payload = [
        {"id": "a", "title": "Write report", "priority": "urgent", "subtasks": [{"title": "x"}, {"title": "y"}]},
        {"id": "b", "title": "Plan trip", "due_date": "2025-01-01T10:00:00", "subtask_count": 3},
    ]
    path.write_text(json.dumps(payload), encoding="utf-8")
    tasks = parse_json(str(path))
    assert len(tasks) == 2
    assert tasks[0].subtask_count == 2
    assert tasks[1].subtask_count == 3
    assert tasks[1].due_date == datetime(2025, 1, 1, 10, 0)


def test_json_parse_malformed(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([{"id": "a", "title": "Write report", "due_date": "bad"}]), encoding="utf-8")
    with pytest.raises(ValueError):
        parse_json(str(path))


def test_json_missing_title(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([{"id": "a"}]), encoding="utf-8")
    with pytest.raises(ValueError, match="Item 1"):
        parse_json(str(path))
