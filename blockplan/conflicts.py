"""
Conflict detection between a candidate slot and committed tasks.

Intervals are half-open: a task ending at 10:30 does not conflict with a
slot starting at 10:30. Completed and unscheduled tasks never conflict.
"""

from collections.abc import Iterable
from datetime import datetime

from blockplan.models import Task


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def find_conflicts(
    slot_start: datetime,
    slot_end: datetime,
    tasks: Iterable[Task],
    ignore_id: str | None = None,
) -> list[Task]:
    """All active tasks whose interval overlaps [slot_start, slot_end)."""
    return [
        t
        for t in tasks
        if t.is_active
        and t.id != ignore_id
        and overlaps(slot_start, slot_end, t.scheduled_at, t.end_at)
    ]


def has_conflict(
    slot_start: datetime,
    slot_end: datetime,
    tasks: Iterable[Task],
    ignore_id: str | None = None,
) -> bool:
    for t in tasks:
        if not t.is_active or t.id == ignore_id:
            continue
        if overlaps(slot_start, slot_end, t.scheduled_at, t.end_at):
            return True
    return False
