"""Strategies for spreading a task's minutes across working days."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from math import ceil

STRATEGIES = ("even", "frontload", "balanced")
FRONTLOAD_SHARE = 0.7
SESSION_CAP_MINUTES = 120
BALANCED_OFFSET_MINUTES = 30


@dataclass
class SegmentDraft:
    title: str
    start_time: datetime
    duration: int


def work_days(start: date | datetime, end: date | datetime) -> list[date]:
    """Weekdays in [start, end], inclusive."""

    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    days = []
    current = start
    while current <= end:
        if current.weekday() < 5:
            days.append(current)
        current += timedelta(days=1)
    return days


def even_split(total_minutes: int, day_count: int) -> list[int]:
    """Equal floor share per day; the last day absorbs the remainder."""

    share = total_minutes // day_count
    return [share] * (day_count - 1) + [total_minutes - share * (day_count - 1)]


def frontload_split(total_minutes: int, day_count: int) -> list[int]:
    """About 70% across the first half of the days, the rest across the second half."""

    midpoint = day_count // 2
    if midpoint == 0:
        return [total_minutes]

    remaining = total_minutes
    minutes = []
    for index in range(day_count):
        if index < midpoint:
            share = min(ceil(total_minutes * FRONTLOAD_SHARE / midpoint), remaining)
        else:
            share = min(ceil(remaining / (day_count - index)), remaining)
        remaining -= share
        minutes.append(share)
    return minutes


def balanced_split(total_minutes: int, day_count: int) -> list[int]:
    """Sessions of up to two hours, one per day, using as few days as possible."""

    sessions = max(1, min(day_count, ceil(total_minutes / SESSION_CAP_MINUTES)))
    per_session = ceil(total_minutes / sessions)
    return [per_session] * (sessions - 1) + [total_minutes - per_session * (sessions - 1)]


def plan_distribution(
    total_minutes: int,
    start: date | datetime,
    end: date | datetime,
    strategy: str,
    day_start: tuple[int, int] = (9, 0),
) -> list[SegmentDraft]:
    """Lay out one segment per working day; days that get no minutes are skipped."""

    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown distribution strategy '{strategy}'")

    days = work_days(start, end)
    if not days or total_minutes <= 0:
        return []

    if strategy == "even":
        minutes = even_split(total_minutes, len(days))
    elif strategy == "frontload":
        minutes = frontload_split(total_minutes, len(days))
    else:
        minutes = balanced_split(total_minutes, len(days))

    hour, minute = day_start
    drafts = []
    for index, (day, duration) in enumerate(zip(days, minutes)):
        if duration <= 0:
            continue
        start_time = datetime.combine(day, time(hour, minute))
        if strategy == "balanced":
            start_time += timedelta(minutes=(index % 2) * BALANCED_OFFSET_MINUTES)
        drafts.append(SegmentDraft(title=f"Work Session {index + 1}", start_time=start_time, duration=duration))
    return drafts
