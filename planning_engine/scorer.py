"""Multi-factor heuristic task scoring and ranking."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import numpy as np

from planning_engine.schema import Task
from planning_engine.signals import BehavioralSignals, active_streak, completed_today
from planning_engine.weights import (
    COMPONENT_ORDER,
    HeuristicWeights,
    WeightComponent,
    adapt_weights,
    contextual_weights,
)

NO_DEADLINE_URGENCY = 0.3
_URGENCY_STEPS = ((2, 0.95), (24, 0.85), (48, 0.70), (168, 0.50), (336, 0.35))
_PRIORITY_VALUE = {"urgent": 1.0, "high": 0.8, "medium": 0.5, "low": 0.3}
_DURATION_FRICTION = ((15, 0.2), (30, 0.3), (60, 0.5), (120, 0.7))
_RECENCY_STEPS = ((30, 0.1), (60, 0.3), (180, 0.6))


@dataclass
class TaskScore:
    """Per-task evaluation; friction is stored raw and inverted only when weighted."""

    overall: float
    urgency: float
    value: float
    friction: float
    success_probability: float
    recency: float
    energy_match: float
    reasoning: list[str] = field(default_factory=list)

    def components(self) -> dict[WeightComponent, float]:
        return {
            WeightComponent.URGENCY: self.urgency,
            WeightComponent.VALUE: self.value,
            WeightComponent.FRICTION: self.friction,
            WeightComponent.SUCCESS_PROBABILITY: self.success_probability,
            WeightComponent.RECENCY: self.recency,
            WeightComponent.ENERGY_MATCH: self.energy_match,
        }


@dataclass
class RankedTask:
    task: Task
    score: TaskScore


def hours_until(due: datetime, now: datetime) -> float:
    return (due - now).total_seconds() / 3600.0


def urgency_score(task: Task, now: datetime) -> float:
    """Step function of hours until the deadline."""

    if task.due_date is None:
        return NO_DEADLINE_URGENCY
    hours = hours_until(task.due_date, now)
    if hours < 0:
        return 1.0
    for limit, score in _URGENCY_STEPS:
        if hours < limit:
            return score
    return 0.25


def value_score(task: Task, signals: BehavioralSignals) -> float:
    value = _PRIORITY_VALUE.get(task.priority, 0.5)
    category_rate = signals.category_completion_rates.get(task.category) if task.category else None
    if category_rate is not None and category_rate > 0.8:
        value *= 1.2
    if task.subtask_count > 0:
        value *= 1.1
    return min(value, 1.0)


def friction_score(task: Task) -> float:
    """Estimated effort of starting the task, higher is harder."""

    friction = 0.5
    if task.estimated_duration:
        friction = 0.9
        for limit, score in _DURATION_FRICTION:
            if task.estimated_duration <= limit:
                friction = score
                break
    if task.subtask_count > 5:
        friction += 0.1
    if task.description_length > 500:
        friction += 0.05
    return min(friction, 1.0)


def success_probability(task: Task, signals: BehavioralSignals, now: datetime) -> float:
    probability = 0.5
    if now.hour in signals.most_productive_hours:
        probability += 0.2
    if now.weekday() in signals.most_productive_days:
        probability += 0.1

    category_rate = signals.category_completion_rates.get(task.category) if task.category else None
    if category_rate is not None:
        probability = (probability + category_rate) / 2

    streak = active_streak(signals, now)
    if streak > 7:
        probability += 0.15
    elif streak > 3:
        probability += 0.10

    if completed_today(signals, now) > 0:
        probability += 0.1
    return min(probability, 1.0)


def recency_score(last_suggested: Optional[datetime], now: datetime) -> float:
    """Anti-spam factor: recently suggested tasks score low."""

    if last_suggested is None:
        return 1.0
    minutes = (now - last_suggested).total_seconds() / 60.0
    for limit, score in _RECENCY_STEPS:
        if minutes < limit:
            return score
    return 1.0


def current_energy(signals: BehavioralSignals, now: datetime) -> float:
    energy = signals.energy_by_hour.get(now.hour)
    if energy is not None:
        return energy
    return signals.current_energy_level or 3.0


def task_difficulty(task: Task) -> int:
    difficulty = 3
    if task.priority in ("urgent", "high"):
        difficulty = 4
    elif task.priority == "low":
        difficulty = 2

    if task.estimated_duration:
        if task.estimated_duration > 120:
            difficulty += 1
        elif task.estimated_duration < 15:
            difficulty -= 1

    if task.subtask_count > 3:
        difficulty += 1
    return max(1, min(5, difficulty))


def energy_match_score(task: Task, signals: BehavioralSignals, now: datetime) -> float:
    diff = abs(current_energy(signals, now) - task_difficulty(task))
    return max(0.0, min(1.0, 1.0 - diff / 5.0))


def _reasoning(urgency: float, value: float, friction: float, probability: float, energy: float) -> list[str]:
    reasons = []
    if urgency > 0.7:
        reasons.append("High urgency - deadline approaching")
    if urgency > 0.9:
        reasons.append("Critical deadline")
    if value > 0.7:
        reasons.append("High-value task")
    if friction < 0.3:
        reasons.append("Quick win - low effort")
    if friction > 0.7:
        reasons.append("Challenging task")
    if probability > 0.8:
        reasons.append(f"{round(probability * 100)}% success rate")
    if energy > 0.8:
        reasons.append("Perfect energy match")
    if energy < 0.3:
        reasons.append("Energy mismatch")
    return reasons


class HeuristicScorer:
    """Scores tasks from behavioral signals, weights and the current time."""

    def __init__(self, signals: Optional[BehavioralSignals] = None, weights: Optional[HeuristicWeights] = None):
        self.signals = signals or BehavioralSignals()
        self.weights = weights or HeuristicWeights()
        self._last_suggestions: dict[str, datetime] = {}

    def calculate_task_score(self, task: Task, now: Optional[datetime] = None) -> TaskScore:
        now = now or datetime.now()
        urgency = urgency_score(task, now)
        value = value_score(task, self.signals)
        friction = friction_score(task)
        probability = success_probability(task, self.signals, now)
        recency = recency_score(self._last_suggestions.get(task.id), now)
        energy = energy_match_score(task, self.signals, now)

        active = contextual_weights(self.weights, now)
        weighted = {
            WeightComponent.URGENCY: urgency,
            WeightComponent.VALUE: value,
            WeightComponent.FRICTION: 1.0 - friction,
            WeightComponent.SUCCESS_PROBABILITY: probability,
            WeightComponent.RECENCY: recency,
            WeightComponent.ENERGY_MATCH: energy,
        }
        values = np.array([weighted[component] for component in COMPONENT_ORDER])
        vector = np.array([active[component] for component in COMPONENT_ORDER])
        overall = float(np.clip(np.dot(values, vector), 0.0, 1.0))

        return TaskScore(
            overall=overall,
            urgency=urgency,
            value=value,
            friction=friction,
            success_probability=probability,
            recency=recency,
            energy_match=energy,
            reasoning=_reasoning(urgency, value, friction, probability, energy),
        )

    def rank_tasks(self, tasks: list[Task], now: Optional[datetime] = None) -> list[RankedTask]:
        """Score active tasks and sort by overall score; equal scores keep input order."""

        now = now or datetime.now()
        scored = [RankedTask(task, self.calculate_task_score(task, now)) for task in tasks if task.is_active]
        return sorted(scored, key=lambda item: item.score.overall, reverse=True)

    def get_best_task(self, tasks: list[Task], now: Optional[datetime] = None) -> Optional[RankedTask]:
        ranked = self.rank_tasks(tasks, now)
        return ranked[0] if ranked else None

    def record_suggestion(self, task_id: str, now: Optional[datetime] = None) -> None:
        self._last_suggestions[task_id] = now or datetime.now()

    def adapt_weights(self, task: Task, score: TaskScore, response: str) -> HeuristicWeights:
        self.weights = adapt_weights(self.weights, score.components(), response)
        return self.get_weights()

    def get_weights(self) -> HeuristicWeights:
        return copy.deepcopy(self.weights)

    def update_signals(self, signals: BehavioralSignals) -> None:
        self.signals = signals
