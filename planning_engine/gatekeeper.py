"""Notification opportunity detection and delivery gating."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from planning_engine.config import NotificationPreferences, parse_clock
from planning_engine.messages import MessageGenerator
from planning_engine.schema import Notification, Task
from planning_engine.scorer import HeuristicScorer, hours_until
from planning_engine.storage import ENGAGEMENT_KEY, KeyValueStore, load_record, save_record

logger = logging.getLogger(__name__)

NOTIFICATION_PRIORITIES = ("critical", "high", "motivational", "informational")
RESPONSE_ACTIONS = ("completed", "started", "viewed", "dismissed")
POSITIVE_ACTIONS = {"completed", "started", "viewed"}

MIN_INTERVAL_MINUTES = {"high": 30, "motivational": 60, "informational": 120}
HOURLY_LIMITS = {"aggressive": 6.0, "moderate": 2.0, "minimal": 0.5, "custom": 1.0}
HISTORY_WINDOW_MINUTES = 60

ENGAGEMENT_MAX = 2.0
FATIGUE_THRESHOLD = 0.5
DISMISSALS_BEFORE_DECAY = 3
ENGAGEMENT_DECAY = 0.9
ENGAGEMENT_GROWTH = 1.1
RESPONSE_DECAY = 0.9
IGNORED_TASK_RATE = 0.2

PRODUCTIVE_HOUR_THRESHOLD = 0.7
ENERGY_MATCH_THRESHOLD = 0.8
DEADLINE_WINDOW_HOURS = 24.0
PROCRASTINATION_WINDOW_HOURS = 48.0

_PRIORITY_TITLES = {
    "critical": "Urgent Action Required",
    "high": "Great Opportunity",
    "motivational": "Smart Suggestion",
    "informational": "Update",
}


@dataclass
class NotificationOpportunity:
    task: Task
    kind: str
    confidence: float
    reason: str


@dataclass
class EngagementState:
    """Everything the gatekeeper remembers between runs."""

    notification_history: dict[str, list[datetime]] = field(default_factory=dict)
    response_rates: dict[str, float] = field(default_factory=dict)
    engagement_score: float = 1.0
    dismissal_count: int = 0
    last_notification_time: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "notification_history": {
                task_id: [stamp.isoformat() for stamp in stamps]
                for task_id, stamps in self.notification_history.items()
            },
            "response_rates": dict(self.response_rates),
            "engagement_score": self.engagement_score,
            "dismissal_count": self.dismissal_count,
            "last_notification_time": self.last_notification_time.isoformat()
            if self.last_notification_time
            else None,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "EngagementState":
        last_raw = payload.get("last_notification_time")
        return cls(
            notification_history={
                str(task_id): [datetime.fromisoformat(stamp) for stamp in stamps]
                for task_id, stamps in payload.get("notification_history", {}).items()
            },
            response_rates={
                str(task_id): max(0.0, min(1.0, float(rate)))
                for task_id, rate in payload.get("response_rates", {}).items()
            },
            engagement_score=max(0.0, min(ENGAGEMENT_MAX, float(payload.get("engagement_score", 1.0)))),
            dismissal_count=max(0, int(payload.get("dismissal_count", 0))),
            last_notification_time=datetime.fromisoformat(last_raw) if last_raw else None,
        )


def in_window(now: datetime, start: str, end: str) -> bool:
    """True when the wall-clock time falls in [start, end); windows may wrap midnight."""

    current = (now.hour, now.minute)
    start_at, end_at = parse_clock(start), parse_clock(end)
    if start_at > end_at:
        return current >= start_at or current < end_at
    return start_at <= current < end_at


class NotificationGatekeeper:
    """Decides which opportunities become notifications and when."""

    def __init__(
        self,
        preferences: Optional[NotificationPreferences] = None,
        scorer: Optional[HeuristicScorer] = None,
        messages: Optional[MessageGenerator] = None,
        sink: Optional[Callable[[Notification], None]] = None,
        store: Optional[KeyValueStore] = None,
    ) -> None:
        self.preferences = preferences or NotificationPreferences()
        self.scorer = scorer or HeuristicScorer()
        self.messages = messages or MessageGenerator()
        self.sink = sink
        self._store = store
        self.state = self._load()

    def _load(self) -> EngagementState:
        payload = load_record(self._store, ENGAGEMENT_KEY)
        if payload is None:
            return EngagementState()
        try:
            return EngagementState.from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Resetting notification engagement state after unreadable record: %s", exc)
            return EngagementState()

    def save(self) -> bool:
        return save_record(self._store, ENGAGEMENT_KEY, self.state.to_dict())

    # Gating

    def is_quiet_hours(self, now: datetime) -> bool:
        prefs = self.preferences
        if not prefs.quiet_hours_enabled:
            return False
        return in_window(now, prefs.quiet_hours_start, prefs.quiet_hours_end)

    def is_productive_hours(self, now: datetime) -> bool:
        prefs = self.preferences
        if not prefs.productive_hours_start or not prefs.productive_hours_end:
            return True
        return in_window(now, prefs.productive_hours_start, prefs.productive_hours_end)

    def recent_notification_count(self, now: datetime, minutes: int = HISTORY_WINDOW_MINUTES) -> int:
        cutoff = now - timedelta(minutes=minutes)
        return sum(1 for stamps in self.state.notification_history.values() for stamp in stamps if stamp > cutoff)

    def _prune_history(self, now: datetime) -> None:
        cutoff = now - timedelta(minutes=HISTORY_WINDOW_MINUTES)
        history = {}
        for task_id, stamps in self.state.notification_history.items():
            recent = [stamp for stamp in stamps if stamp > cutoff]
            if recent:
                history[task_id] = recent
        self.state.notification_history = history

    def hourly_limit(self, now: datetime) -> float:
        limit = HOURLY_LIMITS.get(self.preferences.frequency, HOURLY_LIMITS["moderate"])
        if now.weekday() >= 5 and self.preferences.weekend_strategy == "reduced":
            limit /= 2
        return limit

    def should_send_notification(self, task: Optional[Task], priority: str, now: Optional[datetime] = None) -> bool:
        """Apply the delivery policy; a False result is a normal outcome, not an error."""

        if priority not in NOTIFICATION_PRIORITIES:
            raise ValueError(f"Unknown notification priority '{priority}'")
        now = now or datetime.now()
        prefs = self.preferences

        if not prefs.enabled:
            return False
        if priority == "critical":
            return not self.is_quiet_hours(now)
        if self.is_quiet_hours(now):
            return False
        if now.weekday() >= 5 and prefs.weekend_strategy == "off":
            return False
        if not self.is_productive_hours(now):
            return priority == "high"

        last = self.state.last_notification_time
        if last is not None:
            minutes_since = (now - last).total_seconds() / 60.0
            if minutes_since < MIN_INTERVAL_MINUTES.get(priority, 60):
                return False

        if self.state.engagement_score < FATIGUE_THRESHOLD:
            return priority == "high"

        if task is not None and priority == "motivational":
            if self.state.response_rates.get(task.id, 0.5) < IGNORED_TASK_RATE:
                return False

        return self.recent_notification_count(now) < self.hourly_limit(now)

    # Opportunities

    def detect_opportunities(self, tasks: list[Task], now: Optional[datetime] = None) -> list[NotificationOpportunity]:
        """Collect at most one opportunity per kind, most confident first."""

        now = now or datetime.now()
        opportunities: list[NotificationOpportunity] = []
        signals = self.scorer.signals

        ranked = self.scorer.rank_tasks(tasks, now)
        if ranked and now.hour in signals.most_productive_hours:
            best = ranked[0]
            if best.score.overall > PRODUCTIVE_HOUR_THRESHOLD:
                opportunities.append(
                    NotificationOpportunity(
                        task=best.task,
                        kind="productive_hour",
                        confidence=best.score.overall,
                        reason="You're in one of your most productive hours",
                    )
                )

        matched = [item for item in ranked if item.score.energy_match > ENERGY_MATCH_THRESHOLD]
        if matched:
            best = max(matched, key=lambda item: (item.score.energy_match, item.score.overall))
            opportunities.append(
                NotificationOpportunity(
                    task=best.task,
                    kind="energy_match",
                    confidence=best.score.energy_match,
                    reason="Perfect energy match for this task",
                )
            )

        upcoming = [
            (hours_until(task.due_date, now), task)
            for task in tasks
            if task.due_date is not None and task.status not in ("completed", "archived")
        ]
        upcoming = [(hours, task) for hours, task in upcoming if 0 < hours < DEADLINE_WINDOW_HOURS]
        if upcoming:
            hours, task = min(upcoming, key=lambda item: item[0])
            opportunities.append(
                NotificationOpportunity(
                    task=task,
                    kind="deadline_approaching",
                    confidence=1.0 - hours / DEADLINE_WINDOW_HOURS,
                    reason=f"Deadline in {round(hours)} hours",
                )
            )

        return sorted(opportunities, key=lambda item: item.confidence, reverse=True)

    def priority_for(self, opportunity: NotificationOpportunity) -> str:
        if opportunity.kind == "deadline_approaching" and opportunity.confidence > 0.8:
            return "critical"
        if opportunity.confidence > 0.8:
            return "high"
        return "motivational"

    def send_smart_notification(
        self, opportunity: NotificationOpportunity, now: Optional[datetime] = None
    ) -> Optional[Notification]:
        now = now or datetime.now()
        priority = self.priority_for(opportunity)
        if not self.should_send_notification(opportunity.task, priority, now):
            logger.debug("Suppressed %s notification for task %s", priority, opportunity.task.id)
            return None

        message = self.messages.generate(
            "suggestion",
            task_name=opportunity.task.title,
            success_rate=round(opportunity.confidence * 100),
            reason=opportunity.reason,
        )
        notification = Notification(
            kind="overdue" if priority == "critical" else "suggestion",
            title=_PRIORITY_TITLES[priority],
            message=message,
            task_id=opportunity.task.id,
            action_url=f"/tasks/{opportunity.task.id}",
            created_at=now,
        )
        self.deliver(notification)
        self._prune_history(now)
        self.state.notification_history.setdefault(opportunity.task.id, []).append(now)
        self.state.last_notification_time = now
        self.save()
        return notification

    def deliver(self, notification: Notification) -> None:
        if self.sink is not None:
            self.sink(notification)

    # Feedback

    def handle_user_response(self, task_id: str, action: str) -> None:
        """Update per-task response rate and the engagement fatigue/recovery state."""

        if action not in RESPONSE_ACTIONS:
            raise ValueError(f"Unknown response action '{action}'")
        state = self.state
        positive = action in POSITIVE_ACTIONS
        current_rate = state.response_rates.get(task_id, 0.5)
        state.response_rates[task_id] = current_rate * RESPONSE_DECAY + (1.0 if positive else 0.0) * (
            1 - RESPONSE_DECAY
        )

        if action == "dismissed":
            state.dismissal_count += 1
            if state.dismissal_count >= DISMISSALS_BEFORE_DECAY:
                state.engagement_score *= ENGAGEMENT_DECAY
                state.dismissal_count = 0
                logger.info("Engagement decayed to %.3f after repeated dismissals", state.engagement_score)
        else:
            state.engagement_score = min(ENGAGEMENT_MAX, state.engagement_score * ENGAGEMENT_GROWTH)
            state.dismissal_count = 0

        self.save()

    # Periodic sweeps

    def build_streak_protection(
        self, tasks: list[Task], streak: int, now: Optional[datetime] = None
    ) -> Optional[Notification]:
        if streak <= 0:
            return None
        message = self.messages.generate("streak", streak_count=streak)
        todo = [task for task in tasks if task.status == "todo"]
        quick = min(todo, key=lambda task: task.estimated_duration or 60) if todo else None
        if quick is not None:
            message = f'{message} Quick win available: "{quick.title}"'
        return Notification(
            kind="reminder",
            title="Streak at Risk!",
            message=message,
            task_id=quick.id if quick else None,
            created_at=now or datetime.now(),
        )

    def sweep_deadlines(self, tasks: list[Task], now: Optional[datetime] = None) -> list[Notification]:
        """Overdue, due-soon and procrastination notices for unfinished tasks."""

        now = now or datetime.now()
        notices: list[Notification] = []
        for task in tasks:
            if task.status in ("completed", "archived") or task.due_date is None:
                continue
            hours = hours_until(task.due_date, now)

            if task.due_date < now and task.due_date.date() != now.date():
                notices.append(
                    Notification(
                        kind="overdue",
                        title="Task Overdue",
                        message=f'"{task.title}" is overdue!',
                        task_id=task.id,
                        action_url=f"/tasks/{task.id}",
                        created_at=now,
                    )
                )
            elif 0 < hours <= self.preferences.due_soon_hours:
                when = f"in {int(hours)} hours" if hours < 24 else "soon"
                notices.append(
                    Notification(
                        kind="due_soon",
                        title="Task Due Soon",
                        message=f'"{task.title}" is due {when}',
                        task_id=task.id,
                        action_url=f"/tasks/{task.id}",
                        created_at=now,
                    )
                )

            procrastinating = task.status == "todo" and task.priority in ("urgent", "high")
            if procrastinating and 0 < hours <= PROCRASTINATION_WINDOW_HOURS:
                notices.append(
                    Notification(
                        kind="suggestion",
                        title="Suggestion",
                        message=f'Start working on "{task.title}" to avoid last-minute rush',
                        task_id=task.id,
                        action_url=f"/pomodoro/{task.id}",
                        created_at=now,
                    )
                )
        return notices
