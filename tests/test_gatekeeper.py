import random
from datetime import datetime, timedelta

import pytest

from planning_engine.config import NotificationPreferences
from planning_engine.gatekeeper import NotificationGatekeeper, NotificationOpportunity, in_window
from planning_engine.messages import MessageGenerator
from planning_engine.schema import Task
from planning_engine.storage import MemoryStore

MONDAY = datetime(2025, 3, 3, 10, 0)
SATURDAY = datetime(2025, 3, 8, 10, 0)


def make_gatekeeper(**prefs):
    sent = []
    gatekeeper = NotificationGatekeeper(
        preferences=NotificationPreferences(**prefs),
        messages=MessageGenerator("neutral", random.Random(1)),
        sink=sent.append,
        store=MemoryStore(),
    )
    return gatekeeper, sent


def test_quiet_window_wraps_midnight():
    assert in_window(datetime(2025, 3, 3, 23, 30), "22:00", "08:00")
    assert in_window(datetime(2025, 3, 3, 7, 59), "22:00", "08:00")
    assert not in_window(datetime(2025, 3, 3, 8, 0), "22:00", "08:00")
    assert in_window(datetime(2025, 3, 3, 12, 0), "09:00", "17:00")


def test_quiet_hours_block_motivational():
    gatekeeper, _ = make_gatekeeper()
    assert gatekeeper.should_send_notification(None, "motivational", MONDAY.replace(hour=23)) is False


def test_critical_passes_outside_quiet_hours_despite_recent_notification():
    gatekeeper, _ = make_gatekeeper()
    gatekeeper.state.last_notification_time = MONDAY - timedelta(minutes=1)
    gatekeeper.state.engagement_score = 0.1
    assert gatekeeper.should_send_notification(None, "critical", MONDAY) is True
    assert gatekeeper.should_send_notification(None, "critical", MONDAY.replace(hour=23)) is False


def test_disabled_notifications_block_everything():
    gatekeeper, _ = make_gatekeeper(enabled=False)
    assert gatekeeper.should_send_notification(None, "critical", MONDAY) is False


def test_minimum_gap_between_notifications():
    gatekeeper, _ = make_gatekeeper()
    gatekeeper.state.last_notification_time = MONDAY - timedelta(minutes=10)
    assert gatekeeper.should_send_notification(None, "high", MONDAY) is False
    gatekeeper.state.last_notification_time = MONDAY - timedelta(minutes=31)
    assert gatekeeper.should_send_notification(None, "high", MONDAY) is True
    assert gatekeeper.should_send_notification(None, "motivational", MONDAY) is False


def test_hourly_cap():
    gatekeeper, _ = make_gatekeeper(frequency="moderate")
    gatekeeper.state.notification_history = {
        "a": [MONDAY - timedelta(minutes=70)],
        "b": [MONDAY - timedelta(minutes=65)],
    }
    assert gatekeeper.should_send_notification(None, "informational", MONDAY) is True
    gatekeeper.state.notification_history["a"].append(MONDAY - timedelta(minutes=50))
    gatekeeper.state.notification_history["b"].append(MONDAY - timedelta(minutes=40))
    assert gatekeeper.should_send_notification(None, "informational", MONDAY) is False


def test_fatigue_only_lets_high_priority_through():
    gatekeeper, _ = make_gatekeeper()
    gatekeeper.state.engagement_score = 0.4
    assert gatekeeper.should_send_notification(None, "motivational", MONDAY) is False
    assert gatekeeper.should_send_notification(None, "high", MONDAY) is True


def test_ignored_task_gets_no_motivational_nudges():
    gatekeeper, _ = make_gatekeeper()
    task = Task("t1", "Ignored")
    gatekeeper.state.response_rates["t1"] = 0.1
    assert gatekeeper.should_send_notification(task, "motivational", MONDAY) is False
    assert gatekeeper.should_send_notification(task, "high", MONDAY) is True


def test_productive_window_limits_to_high():
    gatekeeper, _ = make_gatekeeper(productive_hours_start="09:00", productive_hours_end="17:00")
    evening = MONDAY.replace(hour=18)
    assert gatekeeper.should_send_notification(None, "motivational", evening) is False
    assert gatekeeper.should_send_notification(None, "high", evening) is True


def test_weekend_strategies():
    off, _ = make_gatekeeper(weekend_strategy="off")
    assert off.should_send_notification(None, "high", SATURDAY) is False
    assert off.should_send_notification(None, "critical", SATURDAY) is True

    reduced, _ = make_gatekeeper(weekend_strategy="reduced")
    assert reduced.hourly_limit(SATURDAY) == 1.0
    assert reduced.hourly_limit(MONDAY) == 2.0


def test_unknown_priority_is_rejected():
    gatekeeper, _ = make_gatekeeper()
    with pytest.raises(ValueError):
        gatekeeper.should_send_notification(None, "shouting", MONDAY)


def test_three_dismissals_decay_engagement():
    gatekeeper, _ = make_gatekeeper()
    gatekeeper.handle_user_response("t1", "dismissed")
    gatekeeper.handle_user_response("t1", "dismissed")
    assert gatekeeper.state.engagement_score == 1.0
    assert gatekeeper.state.dismissal_count == 2

    gatekeeper.handle_user_response("t1", "dismissed")
    assert gatekeeper.state.engagement_score == pytest.approx(0.9)
    assert gatekeeper.state.dismissal_count == 0


def test_positive_response_recovers_engagement():
    gatekeeper, _ = make_gatekeeper()
    gatekeeper.handle_user_response("t1", "dismissed")
    gatekeeper.handle_user_response("t1", "completed")
    assert gatekeeper.state.dismissal_count == 0
    assert gatekeeper.state.engagement_score == pytest.approx(1.1)
    assert gatekeeper.state.response_rates["t1"] == pytest.approx(0.45 * 0.9 + 0.1)

    for _ in range(20):
        gatekeeper.handle_user_response("t1", "started")
    assert gatekeeper.state.engagement_score == 2.0


def test_unknown_action_is_rejected():
    gatekeeper, _ = make_gatekeeper()
    with pytest.raises(ValueError):
        gatekeeper.handle_user_response("t1", "ignored")


def test_engagement_state_persists():
    backing = MemoryStore()
    first = NotificationGatekeeper(store=backing)
    for _ in range(3):
        first.handle_user_response("t1", "dismissed")
    second = NotificationGatekeeper(store=backing)
    assert second.state.engagement_score == pytest.approx(0.9)
    assert second.state.response_rates["t1"] == pytest.approx(first.state.response_rates["t1"])


def test_deadline_opportunity_is_detected():
    gatekeeper, _ = make_gatekeeper()
    task = Task("t1", "Ship release", priority="high", due_date=MONDAY + timedelta(hours=2))
    opportunities = gatekeeper.detect_opportunities([task, Task("t2", "Later")], MONDAY)

    deadline = [opp for opp in opportunities if opp.kind == "deadline_approaching"]
    assert len(deadline) == 1
    assert deadline[0].confidence == pytest.approx(1 - 2 / 24)
    assert gatekeeper.priority_for(deadline[0]) == "critical"
    confidences = [opp.confidence for opp in opportunities]
    assert confidences == sorted(confidences, reverse=True)


def test_no_opportunities_for_empty_task_list():
    gatekeeper, _ = make_gatekeeper()
    assert gatekeeper.detect_opportunities([], MONDAY) == []


def test_send_records_history_and_respects_gap():
    gatekeeper, sent = make_gatekeeper()
    opportunity = NotificationOpportunity(Task("t1", "Tidy desk"), "energy_match", 0.5, "Good fit")

    notification = gatekeeper.send_smart_notification(opportunity, MONDAY)
    assert notification is not None
    assert notification.task_id == "t1"
    assert "Tidy desk" in notification.message
    assert sent == [notification]
    assert gatekeeper.state.last_notification_time == MONDAY
    assert gatekeeper.state.notification_history["t1"] == [MONDAY]

    assert gatekeeper.send_smart_notification(opportunity, MONDAY + timedelta(minutes=10)) is None
    assert len(sent) == 1


def test_deadline_sweep():
    gatekeeper, _ = make_gatekeeper()
    tasks = [
        Task("late", "Late one", due_date=MONDAY - timedelta(days=1)),
        Task("soon", "Soon one", priority="urgent", due_date=MONDAY + timedelta(hours=5)),
        Task("done", "Done one", status="completed", due_date=MONDAY - timedelta(days=2)),
        Task("earlier", "Earlier today", due_date=MONDAY - timedelta(hours=1)),
        Task("free", "No deadline"),
    ]
    notices = gatekeeper.sweep_deadlines(tasks, MONDAY)
    kinds = [(notice.task_id, notice.kind) for notice in notices]
    assert kinds == [("late", "overdue"), ("soon", "due_soon"), ("soon", "suggestion")]
    assert notices[1].message == '"Soon one" is due in 5 hours'


def test_streak_protection_suggests_quickest_task():
    gatekeeper, _ = make_gatekeeper()
    tasks = [Task("long", "Long", estimated_duration=90), Task("quick", "Quick", estimated_duration=5)]
    assert gatekeeper.build_streak_protection(tasks, 0, MONDAY) is None
    notice = gatekeeper.build_streak_protection(tasks, 4, MONDAY)
    assert notice.task_id == "quick"
    assert "4" in notice.message
    assert "Quick" in notice.message


def test_history_drops_stamps_outside_the_hour():
    backing = MemoryStore()
    gatekeeper = NotificationGatekeeper(store=backing)
    gatekeeper.state.notification_history = {
        "old": [MONDAY - timedelta(hours=2)],
        "t1": [MONDAY - timedelta(hours=3), MONDAY - timedelta(minutes=45)],
    }
    opportunity = NotificationOpportunity(Task("t1", "Tidy desk"), "energy_match", 0.5, "Good fit")

    assert gatekeeper.send_smart_notification(opportunity, MONDAY) is not None
    assert gatekeeper.state.notification_history == {"t1": [MONDAY - timedelta(minutes=45), MONDAY]}
    assert NotificationGatekeeper(store=backing).state.notification_history == {
        "t1": [MONDAY - timedelta(minutes=45), MONDAY]
    }
