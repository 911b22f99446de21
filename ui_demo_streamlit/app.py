"""Streamlit demo UI for planning-engine."""

from __future__ import annotations

import tempfile
from collections import Counter
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

from planning_engine.adapters import csv_adapter, json_adapter
from planning_engine.config import PlannerSettings
from planning_engine.engine import PlanningEngine
from planning_engine.schema import PRIORITIES, Task
from planning_engine.scheduling import ScheduleOptions
from planning_engine.storage import MemoryStore
from planning_engine.transparency import explain_score


def _parse_tasks_from_path(file_path: str) -> list[Task]:
    suffix = Path(file_path).suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(file_path)
    if suffix == ".json":
        return json_adapter.parse(file_path)
    raise ValueError("Unsupported file type. Please use .csv or .json")


def _parse_uploaded(uploaded_file) -> list[Task]:
    suffix = Path(uploaded_file.name).suffix.lower()
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as handle:
        handle.write(uploaded_file.getbuffer())
        temp_path = handle.name
    return _parse_tasks_from_path(temp_path)


def _build_summary(tasks: list[Task]) -> dict[str, Any]:
    priority_counts = Counter(task.priority for task in tasks)
    active = [task for task in tasks if task.is_active]
    return {
        "total_tasks": len(tasks),
        "active_tasks": len(active),
        "with_deadline": sum(1 for task in tasks if task.due_date is not None),
        "priority_counts": {priority: priority_counts.get(priority, 0) for priority in PRIORITIES},
    }


def run_engine(
    tasks: list[Task],
    now: datetime,
    energy: float | None = None,
    settings: PlannerSettings | None = None,
    horizon_days: int = 5,
) -> dict[str, Any]:
    """Run all engine steps against a fresh in-memory engine and return a UI-friendly payload."""

    engine = PlanningEngine(settings=settings, store=MemoryStore())
    if energy is not None:
        engine.record_energy(energy, now)

    ranked = engine.scorer.rank_tasks(tasks, now)
    opportunities = engine.gatekeeper.detect_opportunities(tasks, now)
    notifications = engine.run_periodic_check(tasks, now)

    start: date = now.date()
    segments = engine.scheduler.auto_schedule_tasks(
        tasks, start, start + timedelta(days=horizon_days - 1), ScheduleOptions(), engine.signals
    )

    return {
        "summary": _build_summary(tasks),
        "ranking": [
            {
                "task": item.task.title,
                "overall": round(item.score.overall, 3),
                "urgency": item.score.urgency,
                "value": item.score.value,
                "friction": item.score.friction,
                "energy_match": round(item.score.energy_match, 3),
                "reasoning": ", ".join(item.score.reasoning),
            }
            for item in ranked
        ],
        "best": explain_score(ranked[0].score, engine.scorer.weights, now) if ranked else None,
        "opportunities": [
            {"task": opp.task.title, "kind": opp.kind, "confidence": round(opp.confidence, 3), "reason": opp.reason}
            for opp in opportunities
        ],
        "notifications": [{"kind": n.kind, "title": n.title, "message": n.message} for n in notifications],
        "schedule": [
            {
                "day": seg.start_time.strftime("%a %d %b"),
                "start": seg.start_time.strftime("%H:%M"),
                "end": seg.end_time.strftime("%H:%M"),
                "title": seg.title,
            }
            for seg in segments
        ],
        "weights": engine.learning_report(),
    }


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Planning Engine Demo", layout="wide")
    st.title("Planning Engine: Streamlit Demo")

    with st.sidebar:
        st.header("Controls")
        uploaded = st.file_uploader("Upload task list", type=["csv", "json"])
        use_demo = st.checkbox("Load demo tasks", value=True)
        day = st.date_input("Today", value=date(2025, 3, 3))
        now_hour = st.slider("Now hour", min_value=0, max_value=23, value=10)
        energy = st.slider("Energy level", min_value=1, max_value=5, value=3)
        style = st.selectbox("Motivation style", options=["encouraging", "neutral", "challenging"], index=0)
        strategy = st.selectbox("Distribution strategy", options=["even", "frontload", "balanced"], index=0)
        horizon = st.number_input("Planning horizon (days)", min_value=1, max_value=14, value=5, step=1)
        run = st.button("Run engine", type="primary")

    if not run:
        st.info("Configure inputs in the sidebar and click **Run engine**.")
        return

    try:
        if use_demo:
            tasks = csv_adapter.parse("examples/sample_tasks.csv")
            data_source = "demo tasks (examples/sample_tasks.csv)"
        elif uploaded is not None:
            tasks = _parse_uploaded(uploaded)
            data_source = f"uploaded file ({uploaded.name})"
        else:
            st.error("Please upload a CSV/JSON file or enable 'Load demo tasks'.")
            return

        if not tasks:
            st.error("No tasks were found in the selected input.")
            return

        settings = PlannerSettings.model_validate(
            {"heuristics": {"motivation_style": style}, "distribution_strategy": strategy}
        )
        now = datetime.combine(day, datetime.min.time()).replace(hour=int(now_hour))
        result = run_engine(tasks, now, float(energy), settings, int(horizon))

        st.success(f"Loaded {len(tasks)} tasks from {data_source}.")

        st.subheader("A) Task Summary")
        summary = result["summary"]
        c1, c2, c3 = st.columns(3)
        c1.metric("Total tasks", summary["total_tasks"])
        c2.metric("Active", summary["active_tasks"])
        c3.metric("With deadline", summary["with_deadline"])
        st.table([summary["priority_counts"]])

        st.subheader("B) Ranking")
        st.table(result["ranking"])
        if result["best"] is not None:
            st.write("**Why the top task**")
            st.table(result["best"]["contributions"])

        st.subheader("C) Notifications")
        st.table(result["opportunities"] or [{"kind": "none"}])
        for notification in result["notifications"]:
            st.write(f"**{notification['title']}**: {notification['message']}")

        st.subheader("D) Schedule")
        st.table(result["schedule"] or [{"day": "nothing scheduled"}])

        if result["weights"] is not None:
            st.subheader("E) Learned Weights")
            st.table(result["weights"]["components"])

    except ValueError as exc:
        st.error(f"Input error: {exc}")
    except Exception:
        st.error("Something went wrong while running the demo. Please verify the input format.")


if __name__ == "__main__":
    main()
