"""Time-slot suggestion, task distribution and conflict resolution."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from planning_engine.config import WorkingHours, parse_clock
from planning_engine.distribution import STRATEGIES, plan_distribution
from planning_engine.schema import Task, TaskSegment
from planning_engine.scorer import hours_until
from planning_engine.segments import SegmentStore
from planning_engine.signals import BehavioralSignals

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60
SLOT_STEP_MINUTES = 30
NEIGHBOR_WINDOW_MINUTES = 30
RESOLUTION_BUFFER_MINUTES = 5

PRIORITY_ORDER = {"urgent": 0, "high": 1, "medium": 2, "low": 3}
PRIORITY_COLORS = {"urgent": "#ef4444", "high": "#f97316", "medium": "#3b82f6", "low": "#10b981"}
SEGMENT_COLORS = ("#6366f1", "#8b5cf6", "#06b6d4", "#10b981", "#f59e0b")


@dataclass
class ConflictInfo:
    segment1: TaskSegment
    segment2: TaskSegment
    overlap_minutes: float


@dataclass
class SchedulingSuggestion:
    task_id: str
    suggested_time: datetime
    duration: int
    reason: str
    confidence: float
    score: float


@dataclass
class ScheduleOptions:
    respect_priority: bool = True
    respect_deadlines: bool = True
    respect_energy_levels: bool = True
    avoid_overload: bool = True


def overlap_minutes(first: TaskSegment, second: TaskSegment) -> float:
    start = max(first.start_time, second.start_time)
    end = min(first.end_time, second.end_time)
    if start >= end:
        return 0.0
    return (end - start).total_seconds() / 60.0


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def order_for_scheduling(tasks: list[Task], options: ScheduleOptions) -> list[Task]:
    """Deadline first, then priority, when both are requested.

    Tasks without a deadline go after every dated task.
    """

    def deadline_key(task: Task) -> tuple:
        return (task.due_date is None, task.due_date or datetime.max)

    def priority_key(task: Task) -> int:
        return PRIORITY_ORDER.get(task.priority, len(PRIORITY_ORDER))

    if options.respect_deadlines and options.respect_priority:
        return sorted(tasks, key=lambda task: (*deadline_key(task), priority_key(task)))
    if options.respect_deadlines:
        return sorted(tasks, key=deadline_key)
    if options.respect_priority:
        return sorted(tasks, key=priority_key)
    return list(tasks)


class Scheduler:
    """Greedy scheduler over a SegmentStore; not an optimal solver."""

    def __init__(
        self,
        segments: Optional[SegmentStore] = None,
        working_hours: Optional[WorkingHours] = None,
        strategy: str = "even",
        rng: Optional[random.Random] = None,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown distribution strategy '{strategy}'")
        self.segments = segments or SegmentStore()
        self.working_hours = working_hours or WorkingHours()
        self.strategy = strategy
        self._rng = rng or random.Random()

    def _working_window(self, day: date) -> tuple[datetime, datetime]:
        start_h, start_m = parse_clock(self.working_hours.start)
        end_h, end_m = parse_clock(self.working_hours.end)
        return datetime.combine(day, time(start_h, start_m)), datetime.combine(day, time(end_h, end_m))

    # Conflicts

    def detect_conflicts(self, day: date | datetime) -> list[ConflictInfo]:
        segments = self.segments.segments_for_date(_as_date(day))
        conflicts = []
        for i, first in enumerate(segments):
            for second in segments[i + 1 :]:
                overlap = overlap_minutes(first, second)
                if overlap > 0:
                    conflicts.append(ConflictInfo(first, second, overlap))
        return conflicts

    def resolve_conflicts(self, conflicts: list[ConflictInfo]) -> int:
        """Shift the later segment of each pair to just after the earlier one.

        Positions are re-read so pairs already separated by an earlier move are skipped.
        Returns the number of moves made.
        """

        moved = 0
        for conflict in conflicts:
            first = self.segments.get_segment(conflict.segment1.id)
            second = self.segments.get_segment(conflict.segment2.id)
            if first is None or second is None or overlap_minutes(first, second) <= 0:
                continue
            earlier, later = (first, second) if first.start_time <= second.start_time else (second, first)
            new_start = earlier.end_time + timedelta(minutes=RESOLUTION_BUFFER_MINUTES)
            self.segments.move_segment(later.id, new_start)
            moved += 1
        return moved

    def resolve_day(self, day: date | datetime) -> int:
        """Detect and resolve until the day is conflict-free.

        Segments pushed past midnight land on the next day, which is then
        resolved as well. Moves only go forward, so days are handled in order.
        """

        pending = {_as_date(day)}
        total_moves = 0
        while pending:
            current = min(pending)
            pending.discard(current)
            count = len(self.segments.segments_for_date(current))
            max_passes = count * count + 1
            for _ in range(max_passes):
                conflicts = self.detect_conflicts(current)
                if not conflicts:
                    break
                total_moves += self.resolve_conflicts(conflicts)
                pending.update(self._spilled_days(conflicts, current))
            else:
                logger.warning("Conflicts on %s still present after %d passes", current, max_passes)
        return total_moves

    def _spilled_days(self, conflicts: list[ConflictInfo], day: date) -> set[date]:
        days = set()
        for conflict in conflicts:
            for segment_id in (conflict.segment1.id, conflict.segment2.id):
                segment = self.segments.get_segment(segment_id)
                if segment is not None and segment.start_time.date() > day:
                    days.add(segment.start_time.date())
        return days

    # Slots

    def suggest_alternative_slots(
        self,
        task: Task,
        day: date | datetime,
        count: int = 3,
        signals: Optional[BehavioralSignals] = None,
    ) -> list[SchedulingSuggestion]:
        """Score free half-hour aligned slots inside working hours and return the best."""

        day = _as_date(day)
        duration = task.estimated_duration or DEFAULT_DURATION_MINUTES
        window_start, window_end = self._working_window(day)
        existing = self.segments.segments_for_date(day)
        neighbor_window = timedelta(minutes=NEIGHBOR_WINDOW_MINUTES)

        offset = (-(window_start.minute % SLOT_STEP_MINUTES)) % SLOT_STEP_MINUTES
        slot = window_start + timedelta(minutes=offset)

        candidates = []
        while slot < window_end:
            slot_end = slot + timedelta(minutes=duration)
            if slot_end <= window_end:
                conflict = False
                neighbors = 0
                for seg in existing:
                    if slot < seg.end_time and slot_end > seg.start_time:
                        conflict = True
                        break
                    gap = min(abs(slot - seg.end_time), abs(slot_end - seg.start_time))
                    if gap < neighbor_window:
                        neighbors += 1
                if not conflict:
                    candidates.append(self._score_slot(task, slot, duration, neighbors, signals))
            slot += timedelta(minutes=SLOT_STEP_MINUTES)

        ranked = sorted(candidates, key=lambda item: item.score, reverse=True)
        return ranked[:count]

    def _score_slot(
        self,
        task: Task,
        slot: datetime,
        duration: int,
        neighbors: int,
        signals: Optional[BehavioralSignals],
    ) -> SchedulingSuggestion:
        score = 1.0
        reason = "Available slot"
        if task.priority in ("high", "urgent") and 8 <= slot.hour < 12:
            score += 0.3
            reason = "Morning slot - ideal for high priority"
        if duration <= 30 and 14 <= slot.hour < 16:
            score += 0.2
            reason = "Afternoon slot - good for quick tasks"
        if neighbors > 2:
            score -= 0.2
            reason = "May be too busy"
        if neighbors == 0:
            score += 0.1
            reason = "Clear time block"
        if signals is not None and slot.hour in signals.most_productive_hours:
            score += 0.1
            reason = "One of your most productive hours"
        return SchedulingSuggestion(
            task_id=task.id,
            suggested_time=slot,
            duration=duration,
            reason=reason,
            confidence=min(score, 1.0),
            score=score,
        )

    # Distribution

    def distribute_task(
        self,
        task_id: str,
        total_minutes: int,
        start: date | datetime,
        end: date | datetime,
        strategy: Optional[str] = None,
    ) -> list[TaskSegment]:
        drafts = plan_distribution(
            total_minutes,
            start,
            end,
            strategy or self.strategy,
            day_start=parse_clock(self.working_hours.start),
        )
        color = self._rng.choice(SEGMENT_COLORS)
        created = [
            self.segments.add_segment(
                task_id=task_id,
                title=draft.title,
                start_time=draft.start_time,
                duration=draft.duration,
                color=color,
            )
            for draft in drafts
        ]
        logger.debug("Distributed %s minutes of task %s into %d segments", total_minutes, task_id, len(created))
        return created

    def _day_is_full(self, day: date, extra_minutes: int) -> bool:
        window_start, window_end = self._working_window(day)
        capacity = (window_end - window_start).total_seconds() / 60.0
        booked = sum(seg.duration for seg in self.segments.segments_for_date(day))
        return booked + extra_minutes > capacity

    def auto_schedule_tasks(
        self,
        tasks: list[Task],
        start: date | datetime,
        end: date | datetime,
        options: Optional[ScheduleOptions] = None,
        signals: Optional[BehavioralSignals] = None,
    ) -> list[TaskSegment]:
        """Place each open task in its best slot or spread it over the range, then clear conflicts."""

        options = options or ScheduleOptions()
        start_day, end_day = _as_date(start), _as_date(end)
        open_tasks = [task for task in tasks if task.status not in ("completed", "archived")]
        created: list[TaskSegment] = []

        for task in order_for_scheduling(open_tasks, options):
            duration = task.estimated_duration or DEFAULT_DURATION_MINUTES
            target = start_day
            if options.respect_deadlines and task.due_date is not None:
                due_day = task.due_date.date()
                if start_day <= due_day <= end_day:
                    target = due_day

            suggestions = self.suggest_alternative_slots(
                task, target, 1, signals if options.respect_energy_levels else None
            )
            overloaded = options.avoid_overload and self._day_is_full(target, duration)
            if suggestions and not overloaded:
                created.append(
                    self.segments.add_segment(
                        task_id=task.id,
                        title=task.title,
                        start_time=suggestions[0].suggested_time,
                        duration=duration,
                        color=PRIORITY_COLORS.get(task.priority, PRIORITY_COLORS["medium"]),
                    )
                )
            else:
                created.extend(self.distribute_task(task.id, duration, start_day, end_day))

        day = start_day
        while day <= end_day:
            self.resolve_day(day)
            day += timedelta(days=1)

        # Segments may have moved during resolution; hand back their final positions.
        final = [self.segments.get_segment(seg.id) for seg in created]
        return [seg for seg in final if seg is not None]

    # Reporting

    def deadline_indicator(self, task: Task, now: Optional[datetime] = None) -> dict:
        if task.due_date is None:
            return {"color": "#6b7280", "label": "No deadline", "urgency": "low"}
        hours = hours_until(task.due_date, now or datetime.now())
        if hours < 0:
            return {"color": "#dc2626", "label": "Overdue", "urgency": "high"}
        if hours < 24:
            return {"color": "#ea580c", "label": "Due today", "urgency": "high"}
        if hours < 48:
            return {"color": "#f59e0b", "label": "Due tomorrow", "urgency": "medium"}
        if hours < 168:
            return {"color": "#84cc16", "label": "Due this week", "urgency": "medium"}
        return {"color": "#22c55e", "label": "Due later", "urgency": "low"}

    def completion_stats(self, start: date | datetime, end: date | datetime) -> dict:
        segments = self.segments.segments_for_range(start, end)
        done = [seg for seg in segments if seg.completed]
        return {
            "total_tasks": len(segments),
            "completed_tasks": len(done),
            "completion_rate": len(done) / len(segments) if segments else 0.0,
            "total_minutes": sum(seg.duration for seg in segments),
            "completed_minutes": sum(seg.duration for seg in done),
        }
