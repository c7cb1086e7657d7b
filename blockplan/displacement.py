"""
Event Displacement - insert a fixed one-off commitment and repair the fallout.

The event always wins over tasks. Every active task it overlaps is evicted
and re-resolved after the event ends; tasks that cannot be re-placed are
reported with no new time rather than blocking the event. Events stored
earlier as commitments (activity type "event") are fixed and stay put.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime

from blockplan import config
from blockplan.conflicts import overlaps
from blockplan.models import (
    DisplacementReport,
    Event,
    PlacementMode,
    Priority,
    RescheduleEntry,
    Task,
    TaskTypeConstraint,
    TimeBlock,
)
from blockplan.resolver import resolve

logger = logging.getLogger(__name__)

EVENT_ACTIVITY = "event"


def is_event_commitment(task: Task) -> bool:
    """True for the stored form of an event. Such tasks are fixed and never displaced."""
    return task.activity_type == EVENT_ACTIVITY and task.scheduled_at is not None


def event_commitment(event: Event) -> Task:
    """The event as a synthetic task, so conflict checks treat it like any commitment."""
    window = event.window
    return Task(
        id=f"event:{event.id or event.name}",
        activity_type=EVENT_ACTIVITY,
        duration_minutes=window.duration_minutes,
        priority=Priority.HIGH,
        title=event.name,
        scheduled_at=window.start,
    )


def apply_event(
    event: Event,
    committed: Iterable[Task],
    schedule: Sequence[TimeBlock],
    constraints: Mapping[str, TaskTypeConstraint] | None,
    now: datetime,
    lookahead_days: int = config.LOOKAHEAD_DAYS,
) -> DisplacementReport:
    """
    Apply event and re-place the tasks it displaces.

    Displaced tasks are repaired highest priority first, then in order of
    their previous start, each in auto mode with now moved past the event.

    Returns:
        DisplacementReport; updated_tasks is the committed collection with
        displaced tasks replaced by their repaired records.
    """
    committed = list(committed)
    window = event.window
    blocker = event_commitment(event)

    # Positions rather than ids: two records may share an id
    hits = [
        i
        for i, t in enumerate(committed)
        if t.is_active
        and not is_event_commitment(t)
        and overlaps(window.start, window.end, t.scheduled_at, t.end_at)
    ]
    hits.sort(key=lambda i: (-committed[i].priority.rank, committed[i].scheduled_at))
    logger.info(
        "Event %r [%s, %s) displaces %d task(s)",
        event.name,
        window.start,
        window.end,
        len(hits),
    )

    repair_now = max(now, window.end)
    evicted = set(hits)
    working = [t for i, t in enumerate(committed) if i not in evicted] + [blocker]
    repaired: dict[int, Task] = {}
    rescheduled: list[RescheduleEntry] = []

    for i in hits:
        task = committed[i]
        candidate = replace(task, placement_mode=PlacementMode.AUTO, scheduled_at=None)
        slot = resolve(
            candidate,
            schedule,
            working,
            constraints,
            repair_now,
            lookahead_days,
            exclude_self=False,
        )
        updated = candidate.with_result(slot)
        repaired[i] = updated
        if slot.success:
            working.append(updated)
        else:
            logger.warning(
                "Task %s displaced by %r could not be re-placed: %s",
                task.id,
                event.name,
                slot.failure_reason,
            )
        rescheduled.append(
            RescheduleEntry(
                task_id=task.id,
                new_scheduled_at=slot.scheduled_at,
                assigned_block_id=slot.assigned_block_id,
                failure_reason=slot.failure_reason,
            )
        )

    return DisplacementReport(
        event=event,
        displaced_tasks=[committed[i] for i in hits],
        rescheduled=rescheduled,
        updated_tasks=[repaired.get(i, t) for i, t in enumerate(committed)],
    )
