"""Day-indexed storage of scheduled task segments."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

from planning_engine.schema import TaskSegment, TimeBlock
from planning_engine.storage import SEGMENTS_KEY, KeyValueStore, load_record, save_record

logger = logging.getLogger(__name__)


class SegmentStore:
    """Owns every TaskSegment, grouped into one TimeBlock per calendar day."""

    def __init__(self, store: Optional[KeyValueStore] = None) -> None:
        self._store = store
        self._blocks: dict[date, TimeBlock] = self._load()

    def _load(self) -> dict[date, TimeBlock]:
        payload = load_record(self._store, SEGMENTS_KEY)
        if payload is None:
            return {}
        blocks: dict[date, TimeBlock] = {}
        try:
            for raw in payload.get("segments", []):
                self._insert(blocks, TaskSegment.from_dict(raw))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable segment store: %s", exc)
            return {}
        return blocks

    def save(self) -> bool:
        return save_record(self._store, SEGMENTS_KEY, {"segments": [seg.to_dict() for seg in self.all_segments()]})

    @staticmethod
    def _insert(blocks: dict[date, TimeBlock], segment: TaskSegment) -> None:
        day = segment.start_time.date()
        block = blocks.get(day)
        if block is None:
            block = blocks[day] = TimeBlock(id=str(uuid.uuid4()), day=day)
        block.segments.append(segment)

    def _locate(self, segment_id: str) -> Optional[tuple[TimeBlock, int]]:
        for block in self._blocks.values():
            for index, segment in enumerate(block.segments):
                if segment.id == segment_id:
                    return block, index
        return None

    def add_segment(
        self,
        task_id: str,
        title: str,
        start_time: datetime,
        duration: int,
        color: str,
        end_time: Optional[datetime] = None,
        completed: bool = False,
    ) -> TaskSegment:
        segment = TaskSegment(
            id=str(uuid.uuid4()),
            task_id=task_id,
            title=title,
            start_time=start_time,
            end_time=end_time or start_time + timedelta(minutes=duration),
            duration=duration,
            color=color,
            completed=completed,
        )
        self._insert(self._blocks, segment)
        self.save()
        return segment

    def get_segment(self, segment_id: str) -> Optional[TaskSegment]:
        located = self._locate(segment_id)
        if located is None:
            return None
        block, index = located
        return block.segments[index]

    def update_segment(self, segment_id: str, **changes) -> Optional[TaskSegment]:
        """Apply field changes; a segment whose start moves to another day changes block."""

        located = self._locate(segment_id)
        if located is None:
            return None
        block, index = located
        updated = replace(block.segments[index], **changes)
        if updated.start_time.date() == block.day:
            block.segments[index] = updated
        else:
            del block.segments[index]
            self._drop_if_empty(block)
            self._insert(self._blocks, updated)
        self.save()
        return updated

    def move_segment(self, segment_id: str, new_start: datetime) -> Optional[TaskSegment]:
        segment = self.get_segment(segment_id)
        if segment is None:
            return None
        return self.update_segment(
            segment_id,
            start_time=new_start,
            end_time=new_start + timedelta(minutes=segment.duration),
        )

    def remove_segment(self, segment_id: str) -> bool:
        located = self._locate(segment_id)
        if located is None:
            return False
        block, index = located
        del block.segments[index]
        self._drop_if_empty(block)
        self.save()
        return True

    def clear_all_segments(self) -> None:
        self._blocks = {}
        self.save()

    def _drop_if_empty(self, block: TimeBlock) -> None:
        if not block.segments:
            self._blocks.pop(block.day, None)

    def segments_for_date(self, day: date | datetime) -> list[TaskSegment]:
        if isinstance(day, datetime):
            day = day.date()
        block = self._blocks.get(day)
        return list(block.segments) if block else []

    def segments_for_range(self, start: date | datetime, end: date | datetime) -> list[TaskSegment]:
        if isinstance(start, datetime):
            start = start.date()
        if isinstance(end, datetime):
            end = end.date()
        segments = [seg for day, block in self._blocks.items() if start <= day <= end for seg in block.segments]
        return sorted(segments, key=lambda seg: seg.start_time)

    def time_blocks(self) -> list[TimeBlock]:
        return [self._blocks[day] for day in sorted(self._blocks)]

    def all_segments(self) -> list[TaskSegment]:
        return [seg for block in self.time_blocks() for seg in block.segments]
