"""Behavioral signal model: aggregate completion and energy patterns."""

from __future__ import annotations

import copy
import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Optional

from planning_engine.schema import Task
from planning_engine.storage import SIGNALS_KEY, KeyValueStore, load_record, save_record

logger = logging.getLogger(__name__)

DEFAULT_PRODUCTIVE_HOURS = (9, 10, 14, 15)
DEFAULT_PRODUCTIVE_DAYS = (0, 1, 2, 3)  # Mon-Thu
TOP_BUCKETS = 4

COMPLETION_DECAY = 0.9
ENERGY_DECAY = 0.8
ENERGY_MIN = 1.0
ENERGY_MAX = 5.0


@dataclass(frozen=True)
class BehavioralSignals:
    """Snapshot of everything learned about the user's working patterns.

    Hour buckets are 0-23, day buckets follow ``datetime.weekday()`` (0=Mon).
    """

    completion_rate: float = 0.5
    average_time_to_complete: float = 60.0
    tasks_by_hour: dict[int, int] = field(default_factory=dict)
    tasks_by_day: dict[int, int] = field(default_factory=dict)
    category_completion_rates: dict[str, float] = field(default_factory=dict)
    most_productive_hours: tuple[int, ...] = DEFAULT_PRODUCTIVE_HOURS
    most_productive_days: tuple[int, ...] = DEFAULT_PRODUCTIVE_DAYS
    current_energy_level: float = 3.0
    energy_by_hour: dict[int, float] = field(default_factory=dict)
    energy_by_day: dict[int, float] = field(default_factory=dict)
    current_streak: int = 0
    longest_streak: int = 0
    today_completed_count: int = 0
    today_target_count: int = 5
    total_tasks_completed: int = 0
    total_tasks_created: int = 0
    last_activity_date: Optional[datetime] = None
    last_energy_check_in: Optional[datetime] = None

    def to_dict(self) -> dict:
        payload = asdict(self)
        for name in ("tasks_by_hour", "tasks_by_day", "energy_by_hour", "energy_by_day"):
            payload[name] = {str(key): value for key, value in payload[name].items()}
        payload["most_productive_hours"] = list(self.most_productive_hours)
        payload["most_productive_days"] = list(self.most_productive_days)
        for name in ("last_activity_date", "last_energy_check_in"):
            stamp = getattr(self, name)
            payload[name] = stamp.isoformat() if stamp else None
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> "BehavioralSignals":
        """Rebuild a snapshot from its stored form, clamping out-of-range values."""

        defaults = cls()
        last_raw = payload.get("last_activity_date")
        check_in_raw = payload.get("last_energy_check_in")
        return cls(
            completion_rate=_clamp(float(payload.get("completion_rate", defaults.completion_rate)), 0.0, 1.0),
            average_time_to_complete=float(
                payload.get("average_time_to_complete", defaults.average_time_to_complete)
            ),
            tasks_by_hour=_int_keys(payload.get("tasks_by_hour", {}), int),
            tasks_by_day=_int_keys(payload.get("tasks_by_day", {}), int),
            category_completion_rates={
                str(key): _clamp(float(value), 0.0, 1.0)
                for key, value in _mapping(payload.get("category_completion_rates", {})).items()
            },
            most_productive_hours=tuple(
                int(v) for v in payload.get("most_productive_hours", DEFAULT_PRODUCTIVE_HOURS)
            ),
            most_productive_days=tuple(int(v) for v in payload.get("most_productive_days", DEFAULT_PRODUCTIVE_DAYS)),
            current_energy_level=_clamp_energy(float(payload.get("current_energy_level", 3.0))),
            energy_by_hour={k: _clamp_energy(v) for k, v in _int_keys(payload.get("energy_by_hour", {}), float).items()},
            energy_by_day={k: _clamp_energy(v) for k, v in _int_keys(payload.get("energy_by_day", {}), float).items()},
            current_streak=max(0, int(payload.get("current_streak", 0))),
            longest_streak=max(0, int(payload.get("longest_streak", 0))),
            today_completed_count=max(0, int(payload.get("today_completed_count", 0))),
            today_target_count=int(payload.get("today_target_count", defaults.today_target_count)),
            total_tasks_completed=max(0, int(payload.get("total_tasks_completed", 0))),
            total_tasks_created=max(0, int(payload.get("total_tasks_created", 0))),
            last_activity_date=datetime.fromisoformat(last_raw) if last_raw else None,
            last_energy_check_in=datetime.fromisoformat(check_in_raw) if check_in_raw else None,
        )


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _clamp_energy(value: float) -> float:
    return _clamp(float(value), ENERGY_MIN, ENERGY_MAX)


def _mapping(value) -> dict:
    if not isinstance(value, dict):
        raise ValueError("expected a mapping")
    return value


def _int_keys(mapping: dict, cast) -> dict:
    return {int(key): cast(value) for key, value in _mapping(mapping).items()}


def _top_buckets(histogram: dict[int, int], fallback: tuple[int, ...]) -> tuple[int, ...]:
    if not histogram:
        return fallback
    ranked = sorted(histogram.items(), key=lambda item: (-item[1], item[0]))
    return tuple(bucket for bucket, _ in ranked[:TOP_BUCKETS])


def _ema(current: float, sample: float, decay: float) -> float:
    return current * decay + sample * (1.0 - decay)


def apply_completion(signals: BehavioralSignals, task: Task, completed_at: datetime) -> BehavioralSignals:
    """Return signals updated with one task completion."""

    tasks_by_hour = dict(signals.tasks_by_hour)
    tasks_by_hour[completed_at.hour] = tasks_by_hour.get(completed_at.hour, 0) + 1
    tasks_by_day = dict(signals.tasks_by_day)
    tasks_by_day[completed_at.weekday()] = tasks_by_day.get(completed_at.weekday(), 0) + 1

    category_rates = dict(signals.category_completion_rates)
    if task.category:
        current_rate = category_rates.get(task.category, 0.5)
        category_rates[task.category] = _ema(current_rate, 1.0, COMPLETION_DECAY)

    last = signals.last_activity_date
    streak = signals.current_streak
    today_count = signals.today_completed_count
    if last is None:
        streak, today_count, last = 1, 1, completed_at
    else:
        gap_days = (completed_at.date() - last.date()).days
        if gap_days < 0:
            # Backfilled completion from an earlier day; counters for today stay as they are.
            pass
        elif gap_days == 0:
            streak = max(streak, 1)
            today_count += 1
            last = max(last, completed_at)
        else:
            streak = streak + 1 if gap_days == 1 else 1
            today_count = 1
            last = completed_at

    return replace(
        signals,
        completion_rate=_clamp(_ema(signals.completion_rate, 1.0, COMPLETION_DECAY), 0.0, 1.0),
        tasks_by_hour=tasks_by_hour,
        tasks_by_day=tasks_by_day,
        category_completion_rates=category_rates,
        most_productive_hours=_top_buckets(tasks_by_hour, signals.most_productive_hours),
        most_productive_days=_top_buckets(tasks_by_day, signals.most_productive_days),
        current_streak=streak,
        longest_streak=max(signals.longest_streak, streak),
        today_completed_count=today_count,
        total_tasks_completed=signals.total_tasks_completed + 1,
        last_activity_date=last,
    )


def apply_energy(signals: BehavioralSignals, level: float, at: datetime) -> BehavioralSignals:
    """Return signals with an energy check-in blended into the hour and day averages."""

    level = _clamp_energy(level)
    energy_by_hour = dict(signals.energy_by_hour)
    energy_by_hour[at.hour] = _ema(energy_by_hour.get(at.hour, level), level, ENERGY_DECAY)
    energy_by_day = dict(signals.energy_by_day)
    energy_by_day[at.weekday()] = _ema(energy_by_day.get(at.weekday(), level), level, ENERGY_DECAY)

    return replace(
        signals,
        current_energy_level=level,
        energy_by_hour=energy_by_hour,
        energy_by_day=energy_by_day,
        last_energy_check_in=at,
    )


def completed_today(signals: BehavioralSignals, now: datetime) -> int:
    """Today's completion count, or 0 once the last completion is from an earlier day."""

    last = signals.last_activity_date
    if last is None or last.date() != now.date():
        return 0
    return signals.today_completed_count


def active_streak(signals: BehavioralSignals, now: datetime) -> int:
    """Stored streak while it can still be extended today, otherwise 0."""

    last = signals.last_activity_date
    if last is None or (now.date() - last.date()).days > 1:
        return 0
    return signals.current_streak


class SignalStore:
    """Single owner of the persisted behavioral signals."""

    def __init__(self, store: Optional[KeyValueStore] = None, key: str = SIGNALS_KEY) -> None:
        self._store = store
        self._key = key
        self._signals: Optional[BehavioralSignals] = None

    def _current(self) -> BehavioralSignals:
        if self._signals is None:
            self._signals = self._load()
        return self._signals

    def _load(self) -> BehavioralSignals:
        payload = load_record(self._store, self._key)
        if payload is None:
            return BehavioralSignals()
        try:
            return BehavioralSignals.from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Resetting behavioral signals after unreadable record: %s", exc)
            return BehavioralSignals()

    def get_signals(self) -> BehavioralSignals:
        return copy.deepcopy(self._current())

    def record_completion(self, task: Task, completed_at: Optional[datetime] = None) -> BehavioralSignals:
        self._signals = apply_completion(self._current(), task, completed_at or datetime.now())
        self.save()
        return self.get_signals()

    def update_energy(self, level: float, at: Optional[datetime] = None) -> BehavioralSignals:
        self._signals = apply_energy(self._current(), level, at or datetime.now())
        self.save()
        return self.get_signals()

    def reset(self) -> BehavioralSignals:
        logger.info("Resetting behavioral signals to defaults")
        self._signals = BehavioralSignals()
        self.save()
        return self.get_signals()

    def save(self) -> bool:
        return save_record(self._store, self._key, self._current().to_dict())
