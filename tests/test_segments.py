from datetime import date, datetime

from planning_engine.segments import SegmentStore
from planning_engine.storage import SEGMENTS_KEY, MemoryStore


def test_add_and_lookup_segment():
    store = SegmentStore()
    segment = store.add_segment("t1", "Draft", datetime(2025, 3, 3, 9, 0), 45, "#111")
    assert segment.end_time == datetime(2025, 3, 3, 9, 45)
    assert store.get_segment(segment.id) == segment
    assert store.segments_for_date(date(2025, 3, 3)) == [segment]
    assert store.get_segment("missing") is None


def test_moving_to_another_day_changes_block():
    store = SegmentStore()
    segment = store.add_segment("t1", "Draft", datetime(2025, 3, 3, 9, 0), 60, "#111")
    moved = store.move_segment(segment.id, datetime(2025, 3, 4, 14, 0))

    assert moved.end_time == datetime(2025, 3, 4, 15, 0)
    assert store.segments_for_date(date(2025, 3, 3)) == []
    assert store.segments_for_date(date(2025, 3, 4)) == [moved]
    assert [block.day for block in store.time_blocks()] == [date(2025, 3, 4)]


def test_remove_and_clear():
    store = SegmentStore()
    first = store.add_segment("t1", "A", datetime(2025, 3, 3, 9, 0), 30, "#111")
    store.add_segment("t2", "B", datetime(2025, 3, 5, 9, 0), 30, "#111")

    assert store.remove_segment(first.id) is True
    assert store.remove_segment(first.id) is False
    assert len(store.time_blocks()) == 1

    store.clear_all_segments()
    assert store.all_segments() == []


def test_range_is_sorted_by_start():
    store = SegmentStore()
    store.add_segment("t1", "Late", datetime(2025, 3, 4, 15, 0), 30, "#111")
    store.add_segment("t2", "Early", datetime(2025, 3, 3, 9, 0), 30, "#111")
    store.add_segment("t3", "Outside", datetime(2025, 3, 10, 9, 0), 30, "#111")
    titles = [segment.title for segment in store.segments_for_range(date(2025, 3, 3), date(2025, 3, 7))]
    assert titles == ["Early", "Late"]


def test_segments_survive_reload():
    backing = MemoryStore()
    first = SegmentStore(backing)
    segment = first.add_segment("t1", "Draft", datetime(2025, 3, 3, 9, 0), 60, "#111")
    first.update_segment(segment.id, completed=True)

    reloaded = SegmentStore(backing).get_segment(segment.id)
    assert reloaded is not None
    assert reloaded.completed is True
    assert reloaded.start_time == segment.start_time


def test_unreadable_store_starts_empty():
    backing = MemoryStore()
    backing.set(SEGMENTS_KEY, '{"segments": [{"id": "x"}]}')
    assert SegmentStore(backing).all_segments() == []
