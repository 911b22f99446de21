"""Host-facing context object that owns and wires the planning components."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Callable, Optional

from planning_engine.config import PlannerSettings
from planning_engine.gatekeeper import NotificationGatekeeper
from planning_engine.messages import MessageGenerator
from planning_engine.schema import Notification, Task
from planning_engine.scheduling import Scheduler
from planning_engine.scorer import HeuristicScorer, RankedTask
from planning_engine.segments import SegmentStore
from planning_engine.signals import BehavioralSignals, SignalStore, active_streak, completed_today
from planning_engine.storage import WEIGHTS_KEY, KeyValueStore, load_record, save_record
from planning_engine.transparency import explain_weights
from planning_engine.weights import HeuristicWeights

logger = logging.getLogger(__name__)

ENERGY_CHECK_IN_INTERVALS = {
    "hourly": timedelta(hours=1),
    "every-3-hours": timedelta(hours=3),
    "daily": timedelta(days=1),
}

# Notification responses map onto the weight adapter's vocabulary.
_WEIGHT_RESPONSES = {
    "completed": "completed",
    "started": "started",
    "viewed": "viewed",
    "dismissed": "ignored",
    "ignored": "ignored",
    "snoozed": "snoozed",
}
_GATEKEEPER_ACTIONS = {
    "completed": "completed",
    "started": "started",
    "viewed": "viewed",
    "dismissed": "dismissed",
    "ignored": "dismissed",
    "snoozed": "dismissed",
}


class PlanningEngine:
    """One instance per user; components are explicit attributes rather than globals."""

    def __init__(
        self,
        settings: Optional[PlannerSettings] = None,
        store: Optional[KeyValueStore] = None,
        sink: Optional[Callable[[Notification], None]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings or PlannerSettings()
        self.store = store
        rng = rng or random.Random()

        self.signal_store = SignalStore(store)
        self.scorer = HeuristicScorer(self.signal_store.get_signals(), self._load_weights())
        self.gatekeeper = NotificationGatekeeper(
            preferences=self.settings.notifications,
            scorer=self.scorer,
            messages=MessageGenerator(self.settings.heuristics.motivation_style, rng),
            sink=sink,
            store=store,
        )
        self.scheduler = Scheduler(
            segments=SegmentStore(store),
            working_hours=self.settings.working_hours,
            strategy=self.settings.distribution_strategy,
            rng=rng,
        )

    def _load_weights(self) -> HeuristicWeights:
        payload = load_record(self.store, WEIGHTS_KEY)
        if payload is None:
            return HeuristicWeights()
        try:
            return HeuristicWeights.from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Resetting heuristic weights after unreadable record: %s", exc)
            return HeuristicWeights()

    def save_weights(self) -> bool:
        return save_record(self.store, WEIGHTS_KEY, self.scorer.weights.to_dict())

    @property
    def signals(self) -> BehavioralSignals:
        return self.signal_store.get_signals()

    def suggest_next(self, tasks: list[Task], now: Optional[datetime] = None) -> Optional[RankedTask]:
        """Best task to work on now, stamped for recency; None when heuristics are off."""

        if not self.settings.heuristics.enabled:
            return None
        now = now or datetime.now()
        best = self.scorer.get_best_task(tasks, now)
        if best is not None:
            self.scorer.record_suggestion(best.task.id, now)
        return best

    def record_completion(self, task: Task, completed_at: Optional[datetime] = None) -> BehavioralSignals:
        signals = self.signal_store.record_completion(task, completed_at)
        self.scorer.update_signals(signals)
        return signals

    def record_energy(self, level: float, at: Optional[datetime] = None) -> BehavioralSignals:
        if not self.settings.heuristics.energy_tracking_enabled:
            logger.debug("Energy tracking disabled, ignoring check-in")
            return self.signals
        signals = self.signal_store.update_energy(level, at)
        self.scorer.update_signals(signals)
        return signals

    def handle_response(self, task: Task, action: str, now: Optional[datetime] = None) -> Optional[Notification]:
        """Feed a user reaction back into engagement, weights and signals.

        Returns the follow-up notice (a completion cheer, or a gentler nudge once
        repeated dismissals wear engagement down) when one was delivered.
        """

        if action not in _WEIGHT_RESPONSES:
            raise ValueError(f"Unknown response action '{action}'")
        now = now or datetime.now()

        engagement_before = self.gatekeeper.state.engagement_score
        self.gatekeeper.handle_user_response(task.id, _GATEKEEPER_ACTIONS[action])

        if self.settings.heuristics.adaptive_weights_enabled:
            score = self.scorer.calculate_task_score(task, now)
            self.scorer.adapt_weights(task, score, _WEIGHT_RESPONSES[action])
            self.save_weights()

        if action == "completed":
            signals = self.record_completion(task, now)
            message = self.gatekeeper.messages.generate(
                "completion",
                task_name=task.title,
                tasks_completed=completed_today(signals, now),
                streak_count=active_streak(signals, now),
            )
            notice = Notification(
                kind="achievement", title="Task Complete", message=message, task_id=task.id, created_at=now
            )
            return self._deliver_notice(notice, now)

        if self.gatekeeper.state.engagement_score < engagement_before:
            message = self.gatekeeper.messages.generate("struggle", task_name=task.title)
            notice = Notification(
                kind="suggestion",
                title="Let's Try Something Smaller",
                message=message,
                task_id=task.id,
                action_url=f"/tasks/{task.id}",
                created_at=now,
            )
            return self._deliver_notice(notice, now)
        return None

    def _deliver_notice(self, notice: Notification, now: datetime) -> Optional[Notification]:
        if not self.settings.notifications.enabled or self.gatekeeper.is_quiet_hours(now):
            return None
        self.gatekeeper.deliver(notice)
        return notice

    def energy_check_in_due(self, now: Optional[datetime] = None) -> bool:
        """Whether the host should prompt for an energy level now."""

        heuristics = self.settings.heuristics
        interval = ENERGY_CHECK_IN_INTERVALS.get(heuristics.energy_check_in_frequency)
        if not heuristics.energy_tracking_enabled or interval is None:
            return False
        last = self.signals.last_energy_check_in
        return last is None or (now or datetime.now()) - last >= interval

    def run_periodic_check(self, tasks: list[Task], now: Optional[datetime] = None) -> list[Notification]:
        """Hourly pass: surface the strongest opportunity, then sweep deadlines."""

        now = now or datetime.now()
        delivered: list[Notification] = []

        if self.settings.heuristics.enabled:
            opportunities = self.gatekeeper.detect_opportunities(tasks, now)
            if opportunities:
                notification = self.gatekeeper.send_smart_notification(opportunities[0], now)
                if notification is not None:
                    self.scorer.record_suggestion(opportunities[0].task.id, now)
                    delivered.append(notification)

        for notice in self.gatekeeper.sweep_deadlines(tasks, now):
            if self._deliver_notice(notice, now) is not None:
                delivered.append(notice)

        logger.debug("Periodic check delivered %d notifications", len(delivered))
        return delivered

    def learning_report(self) -> Optional[dict]:
        if not self.settings.heuristics.show_learning_transparency:
            return None
        return explain_weights(self.scorer.weights)

    def reset_learning(self) -> None:
        """Forget learned behavior and weights."""

        self.scorer.update_signals(self.signal_store.reset())
        self.scorer.weights = HeuristicWeights()
        self.save_weights()
