"""
Window expansion - turn recurring template blocks into concrete windows.

expand_block_windows yields one [start, end) window per upcoming day for a
block, normalizing blocks that cross midnight. intersect_window narrows a
window by an activity type's preferred time range and allowed weekdays.
"""

import logging
from collections.abc import Iterator
from datetime import datetime, timedelta

from blockplan import config
from blockplan.clock import combine
from blockplan.models import ScheduleWindow, TaskTypeConstraint, TimeBlock

logger = logging.getLogger(__name__)


def expand_block_windows(
    block: TimeBlock,
    now: datetime,
    lookahead_days: int = config.LOOKAHEAD_DAYS,
) -> Iterator[ScheduleWindow]:
    """
    Lazily yield the block's windows for day offsets [0, lookahead_days).

    Windows that have already ended at now are skipped.
    """
    today = now.date()
    start_base = combine(today, block.start)
    end_base = combine(today, block.end)
    if end_base <= start_base:
        end_base += timedelta(days=1)

    for offset in range(lookahead_days):
        shift = timedelta(days=offset)
        window = ScheduleWindow(start_base + shift, end_base + shift)
        if window.end <= now:
            continue
        yield window


def _preferred_ranges(window: ScheduleWindow, constraint: TaskTypeConstraint):
    """
    Occurrences of the preferred range that can touch the window, earliest first.

    Open bounds are None. Overnight ranges end on the day after they start,
    so the occurrence starting the day before the window is included too.
    """
    first = window.start.date()
    if constraint.is_overnight:
        first -= timedelta(days=1)
    day = first
    while day <= window.end.date():
        lo = combine(day, constraint.preferred_start) if constraint.preferred_start else None
        hi = None
        if constraint.preferred_end is not None:
            hi = combine(day, constraint.preferred_end)
            if constraint.is_overnight:
                hi += timedelta(days=1)
        yield lo, hi
        day += timedelta(days=1)


def intersect_window(
    window: ScheduleWindow,
    constraint: TaskTypeConstraint | None,
) -> ScheduleWindow | None:
    """
    Narrow window by constraint.

    Returns None when the window's day is not allowed or when nothing of
    the window survives the preferred time range.
    """
    if constraint is None:
        return window

    allowed = constraint.allowed_weekdays
    if allowed is not None and window.start.weekday() not in allowed:
        return None

    if constraint.preferred_start is None and constraint.preferred_end is None:
        return window

    for lo, hi in _preferred_ranges(window, constraint):
        start = max(window.start, lo) if lo is not None else window.start
        end = min(window.end, hi) if hi is not None else window.end
        if end > start:
            return ScheduleWindow(start, end)
    return None


def contains(window: ScheduleWindow | None, start: datetime, end: datetime) -> bool:
    """True if [start, end) lies entirely inside window."""
    return window is not None and window.start <= start and end <= window.end
