"""
Clock utilities - wall-clock time-of-day parsing and arithmetic.

No timezone handling: every value is a naive local wall-clock time.
Nothing here reads the system clock.
"""

import logging
import re
from datetime import date, datetime, time, timedelta

from blockplan import config

logger = logging.getLogger(__name__)

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def try_parse_hhmm(value: str) -> time | None:
    match = _HHMM.match(value)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if (hours, minutes, seconds) == (24, 0, 0):
        return time(0, 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    return time(hours, minutes, seconds)


DEFAULT_START_TIME: time = try_parse_hhmm(config.DEFAULT_START) or time(9, 0)


def parse_hhmm(value, default: time | None = None) -> time:
    """
    Parse "HH:MM" (or "H:MM", "HH:MM:SS") into a time of day.

    "24:00" is read as midnight. A datetime.time is returned unchanged.
    Unparseable input falls back to default (DEFAULT_START when not given)
    instead of raising.
    """
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        parsed = try_parse_hhmm(value)
        if parsed is not None:
            return parsed
    fallback = default if default is not None else DEFAULT_START_TIME
    logger.warning("Unparseable time %r, using %s", value, fallback.strftime("%H:%M"))
    return fallback


def combine(day: date, tod: time) -> datetime:
    return datetime.combine(day, tod)


def minutes_of_day(tod: time) -> int:
    return tod.hour * 60 + tod.minute


def block_minutes(start: time, end: time) -> int:
    """Minutes from start to end, wrapping past midnight. Equal values span a full day."""
    return (minutes_of_day(end) - minutes_of_day(start)) % 1440 or 1440


def round_up(dt: datetime, granularity: int = config.SNAP_MINUTES) -> datetime:
    """Round dt up to the next granularity-minute boundary (unchanged if already on one)."""
    floor = dt.replace(second=0, microsecond=0) - timedelta(minutes=dt.minute % granularity)
    if floor == dt:
        return dt
    return floor + timedelta(minutes=granularity)


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def parse_weekday(value) -> int | None:
    """Monday=0 .. Sunday=6 from a name ("Tuesday", "tue") or an int."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value <= 6 else None
    if isinstance(value, str):
        key = value.strip().lower()
        if len(key) < 3:
            return None
        for index, name in enumerate(WEEKDAY_NAMES):
            if name.lower().startswith(key):
                return index
    return None


def next_weekday(start: date, weekday: int) -> date:
    """First date on or after start falling on weekday."""
    return start + timedelta(days=(weekday - start.weekday()) % 7)
