"""Demo script for planning-engine."""

import logging
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from planning_engine.adapters.csv_adapter import parse
from planning_engine.engine import PlanningEngine
from planning_engine.storage import MemoryStore


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    tasks = parse("examples/sample_tasks.csv")
    now = datetime(2025, 3, 3, 10, 0)

    engine = PlanningEngine(
        store=MemoryStore(),
        sink=lambda n: print("Notify:", n.title, "-", n.message),
        rng=random.Random(7),
    )

    best = engine.suggest_next(tasks, now)
    if best is not None:
        print(f"Next task: {best.task.title} ({best.score.overall:.3f})", best.score.reasoning)

    for item in engine.scorer.rank_tasks(tasks, now):
        print(f"  {item.score.overall:.3f}  {item.task.title}")

    engine.handle_response(tasks[0], "completed", now + timedelta(minutes=45))
    engine.record_energy(4, now + timedelta(hours=1))
    print("Signals:", engine.signals.current_streak, engine.signals.most_productive_hours)

    engine.run_periodic_check(tasks, now + timedelta(hours=4))

    start = now.date()
    segments = engine.scheduler.auto_schedule_tasks(tasks, start, start + timedelta(days=4), signals=engine.signals)
    for segment in segments:
        print(f"  {segment.start_time:%a %H:%M}-{segment.end_time:%H:%M}  {segment.title}")

    print("Learning:", engine.learning_report())


if __name__ == "__main__":
    main()
