"""
Slot Resolver - place a single task on the calendar.

Resolution order:
1. Explicit placement (specific day/time or delay from now), if it is
   valid and free
2. Blocks matching the task's activity type, earliest in the day first
3. General-purpose buffer blocks when nothing matches

Within a block, each upcoming day's window is narrowed by the activity
type's constraint, then scanned forward in SNAP_MINUTES steps until a
conflict-free start fits before the window ends.

Failing to find a slot is a normal outcome: the returned SlotResult has no
scheduled_at and carries a failure_reason.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta

from blockplan import config
from blockplan.clock import DEFAULT_START_TIME, combine, next_weekday, round_up, weekday_name
from blockplan.conflicts import has_conflict
from blockplan.models import (
    PlacementMode,
    Priority,
    ScheduleWindow,
    SlotResult,
    Task,
    TaskTypeConstraint,
    TimeBlock,
)
from blockplan.windows import contains, expand_block_windows, intersect_window

logger = logging.getLogger(__name__)

NO_MATCHING_BLOCK = "no matching block"
NO_AVAILABLE_SLOT = "no available slot"


def resolve(
    task: Task,
    schedule: Sequence[TimeBlock],
    committed: Iterable[Task],
    constraints: Mapping[str, TaskTypeConstraint] | None,
    now: datetime,
    lookahead_days: int = config.LOOKAHEAD_DAYS,
    *,
    exclude_self: bool = True,
) -> SlotResult:
    """
    Find a start time for task.

    Args:
        task: Task to place
        schedule: Template blocks
        committed: Tasks already on the calendar
        constraints: Constraint per activity type
        now: Reference time; nothing is placed before it
        lookahead_days: Days of each block to search
        exclude_self: Skip committed tasks sharing the task's id (a stale copy of
            the task itself). Callers that already removed stale copies pass
            False so a duplicate id still counts as occupied time.

    Returns:
        SlotResult, successful or carrying a failure_reason
    """
    committed = tuple(committed)
    ignore_id = task.id if exclude_self else None
    constraint = (constraints or {}).get(task.activity_type)

    if task.placement_mode != PlacementMode.AUTO:
        explicit = _resolve_explicit(task, committed, constraint, now, ignore_id)
        if explicit is not None:
            return explicit

    blocks = match_blocks(task.activity_type, schedule)
    if not blocks:
        logger.info("Task %s: no block accepts activity type %r", task.id, task.activity_type)
        return SlotResult.failure(task.id, NO_MATCHING_BLOCK)

    duration = timedelta(minutes=task.duration_minutes)

    for block in blocks:
        for window in expand_block_windows(block, now, lookahead_days):
            usable = intersect_window(window, constraint)
            if usable is None:
                continue

            start = _first_free_start(usable, duration, committed, now, ignore_id)
            if start is None:
                continue

            reason = f"Matched block {block.label or block.id}"
            if start.date() != now.date():
                reason += f", overflowed to {weekday_name(start)}"
            logger.debug("Task %s placed at %s in block %s", task.id, start, block.id)
            return SlotResult(
                task_id=task.id,
                scheduled_at=start,
                assigned_block_id=block.id,
                confidence=calculate_confidence(task, block),
                reason=reason,
            )

    logger.info(
        "Task %s (%d min): no slot in %d block(s) over %d day(s)",
        task.id,
        task.duration_minutes,
        len(blocks),
        lookahead_days,
    )
    return SlotResult.failure(task.id, NO_AVAILABLE_SLOT)


def match_blocks(activity_type: str, schedule: Sequence[TimeBlock]) -> list[TimeBlock]:
    """Blocks accepting activity_type (buffer blocks as fallback), sorted by start."""
    matching = [b for b in schedule if b.accepts(activity_type)]
    if not matching:
        matching = [b for b in schedule if b.activity_type == config.BUFFER_ACTIVITY]
    return sorted(matching, key=lambda b: b.start)


def calculate_confidence(task: Task, block: TimeBlock) -> int:
    """
    Score how well a block suits a task, 0-90.

    +50 exact activity type match, +20/+10/+0 for high/medium/low priority,
    +20 if the task takes at most half the block, +10 if at most three quarters.
    """
    confidence = 0

    if block.activity_type == task.activity_type:
        confidence += config.EXACT_MATCH_SCORE

    confidence += config.PRIORITY_SCORES.get(task.priority, 0)

    block_minutes = block.duration_minutes
    if task.duration_minutes <= block_minutes * 0.5:
        confidence += 20
    elif task.duration_minutes <= block_minutes * 0.75:
        confidence += 10

    return confidence


def explicit_target(task: Task, now: datetime) -> datetime:
    """
    Datetime requested by an explicit placement.

    A weekday anchor that already passed rolls forward one week; a date or
    time-only anchor rolls forward one day.
    """
    if task.placement_mode == PlacementMode.DELAY_FROM_NOW:
        return now + timedelta(minutes=max(task.delay_minutes, 0))

    tod = task.specific_time or DEFAULT_START_TIME
    if task.specific_weekday is not None:
        target = combine(next_weekday(now.date(), task.specific_weekday), tod)
        roll = timedelta(days=7)
    else:
        target = combine(task.specific_date or now.date(), tod)
        roll = timedelta(days=1)

    if target < now:
        target += roll
    return target


def suggest_best_time(
    activity_type: str,
    duration_minutes: int,
    schedule: Sequence[TimeBlock],
    committed: Iterable[Task],
    constraints: Mapping[str, TaskTypeConstraint] | None,
    now: datetime,
) -> SlotResult:
    """Where a medium-priority task of this type and length would land."""
    candidate = Task(
        id="suggestion",
        activity_type=activity_type,
        duration_minutes=duration_minutes,
        priority=Priority.MEDIUM,
    )
    return resolve(candidate, schedule, committed, constraints, now)


def _resolve_explicit(
    task: Task,
    committed: tuple[Task, ...],
    constraint: TaskTypeConstraint | None,
    now: datetime,
    ignore_id: str | None,
) -> SlotResult | None:
    # None means the request cannot be honoured and automatic search takes over
    target = explicit_target(task, now)
    end = target + timedelta(minutes=task.duration_minutes)

    if target < now:
        logger.info("Task %s: explicit time %s already passed", task.id, target)
        return None

    if task.placement_mode == PlacementMode.SPECIFIC_DATETIME and constraint is not None:
        allowed = intersect_window(ScheduleWindow(target, end), constraint)
        if not contains(allowed, target, end):
            logger.info("Task %s: explicit time %s violates its type constraint", task.id, target)
            return None

    if has_conflict(target, end, committed, ignore_id=ignore_id):
        logger.info("Task %s: explicit time %s is taken", task.id, target)
        return None

    return SlotResult(
        task_id=task.id,
        scheduled_at=target,
        confidence=config.EXPLICIT_PLACEMENT_CONFIDENCE,
        reason="Explicit placement",
    )


def _first_free_start(
    window: ScheduleWindow,
    duration: timedelta,
    committed: tuple[Task, ...],
    now: datetime,
    ignore_id: str | None,
) -> datetime | None:
    candidate = round_up(max(now, window.start), config.SNAP_MINUTES)
    if candidate < window.start:
        candidate = window.start

    step = timedelta(minutes=config.SNAP_MINUTES)
    while candidate + duration <= window.end:
        if not has_conflict(candidate, candidate + duration, committed, ignore_id=ignore_id):
            return candidate
        candidate += step
    return None
