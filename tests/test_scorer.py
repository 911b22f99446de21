from datetime import datetime, timedelta

import pytest

from planning_engine.schema import Task
from planning_engine.scorer import (
    HeuristicScorer,
    energy_match_score,
    friction_score,
    recency_score,
    success_probability,
    task_difficulty,
    urgency_score,
    value_score,
)
from planning_engine.signals import BehavioralSignals

NOW = datetime(2025, 3, 3, 10, 0)


def sample_tasks():
    return [
        Task("t1", "Overdue invoice", priority="urgent", due_date=NOW - timedelta(hours=3), estimated_duration=20),
        Task("t2", "Read article", priority="low", estimated_duration=10),
        Task(
            "t3",
            "Quarterly plan",
            priority="high",
            due_date=NOW + timedelta(days=3),
            estimated_duration=240,
            subtask_count=8,
        ),
        Task("t4", "Archived thing", status="archived"),
        Task("t5", "Done thing", status="completed", priority="urgent"),
    ]


def test_overdue_urgent_task_maxes_urgency_and_value():
    score = HeuristicScorer().calculate_task_score(sample_tasks()[0], NOW)
    assert score.urgency == 1.0
    assert score.value == 1.0
    assert "Critical deadline" in score.reasoning


def test_urgency_steps():
    assert urgency_score(Task("a", "a"), NOW) == 0.3
    assert urgency_score(Task("a", "a", due_date=NOW + timedelta(hours=1)), NOW) == 0.95
    assert urgency_score(Task("a", "a", due_date=NOW + timedelta(hours=30)), NOW) == 0.70
    assert urgency_score(Task("a", "a", due_date=NOW + timedelta(days=30)), NOW) == 0.25


def test_value_rewards_reliable_categories_and_subtasks():
    signals = BehavioralSignals(category_completion_rates={"work": 0.9})
    assert value_score(Task("a", "a", category="work"), signals) == pytest.approx(0.6)
    assert value_score(Task("a", "a", subtask_count=2), signals) == pytest.approx(0.55)
    assert value_score(Task("a", "a", priority="urgent", category="work", subtask_count=1), signals) == 1.0


def test_friction_tracks_duration_and_size():
    assert friction_score(Task("a", "a")) == 0.5
    assert friction_score(Task("a", "a", estimated_duration=10)) == 0.2
    assert friction_score(Task("a", "a", estimated_duration=200)) == 0.9
    assert friction_score(Task("a", "a", estimated_duration=200, subtask_count=6, description_length=900)) == 1.0


def test_recency_after_suggestion():
    scorer = HeuristicScorer()
    task = sample_tasks()[1]
    scorer.record_suggestion(task.id, NOW)
    assert scorer.calculate_task_score(task, NOW + timedelta(minutes=10)).recency <= 0.1
    assert scorer.calculate_task_score(task, NOW + timedelta(minutes=181)).recency == 1.0
    assert recency_score(None, NOW) == 1.0


def test_energy_match_prefers_matching_difficulty():
    signals = BehavioralSignals(current_energy_level=3.0)
    medium = Task("a", "a")
    assert task_difficulty(medium) == 3
    assert energy_match_score(medium, signals, NOW) == 1.0

    tired = BehavioralSignals(energy_by_hour={10: 1.0})
    hard = Task("b", "b", priority="urgent", estimated_duration=300, subtask_count=5)
    assert task_difficulty(hard) == 5
    assert energy_match_score(hard, tired, NOW) == pytest.approx(0.2)


def test_all_components_in_unit_range():
    scorer = HeuristicScorer(BehavioralSignals(current_streak=9, today_completed_count=3))
    for task in sample_tasks():
        score = scorer.calculate_task_score(task, NOW)
        for value in list(score.components().values()) + [score.overall]:
            assert 0.0 <= value <= 1.0


def test_rank_tasks_skips_inactive_and_sorts_descending():
    ranked = HeuristicScorer().rank_tasks(sample_tasks(), NOW)
    assert [item.task.id for item in ranked][0] == "t1"
    assert {item.task.id for item in ranked} == {"t1", "t2", "t3"}
    overall = [item.score.overall for item in ranked]
    assert overall == sorted(overall, reverse=True)


def test_empty_input_yields_no_recommendation():
    scorer = HeuristicScorer()
    assert scorer.rank_tasks([], NOW) == []
    assert scorer.get_best_task([], NOW) is None
    assert scorer.get_best_task(sample_tasks()[3:], NOW) is None


def test_equal_scores_keep_input_order():
    tasks = [Task(f"t{i}", "Same task") for i in range(4)]
    ranked = HeuristicScorer().rank_tasks(tasks, NOW)
    assert [item.task.id for item in ranked] == ["t0", "t1", "t2", "t3"]


def test_adapt_weights_returns_copy():
    scorer = HeuristicScorer()
    task = sample_tasks()[0]
    weights = scorer.adapt_weights(task, scorer.calculate_task_score(task, NOW), "completed")
    assert weights.total() == pytest.approx(1.0)
    weights.base.clear()
    assert scorer.get_weights().total() == pytest.approx(1.0)


def test_success_probability_ignores_stale_counters():
    task = Task("a", "a")
    fresh = BehavioralSignals(today_completed_count=3, current_streak=5, last_activity_date=NOW)
    assert success_probability(task, fresh, NOW) == pytest.approx(1.0)

    yesterday = BehavioralSignals(today_completed_count=3, current_streak=5, last_activity_date=NOW - timedelta(days=1))
    assert success_probability(task, yesterday, NOW) == pytest.approx(0.9)

    last_week = BehavioralSignals(today_completed_count=3, current_streak=5, last_activity_date=NOW - timedelta(days=7))
    assert success_probability(task, last_week, NOW) == pytest.approx(0.8)
