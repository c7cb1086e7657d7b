"""
Batch Scheduler - place many tasks without collisions.

Tasks are placed highest priority first, shorter tasks first within a
priority, each against the commitments plus everything placed earlier in
the same call. Only when priority and duration tie does the input order
decide who gets the earlier slot.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime

from blockplan import config
from blockplan.models import (
    PlacementMode,
    SlotResult,
    Task,
    TaskStatus,
    TaskTypeConstraint,
    TimeBlock,
)
from blockplan.resolver import resolve

logger = logging.getLogger(__name__)


def batch_order(tasks: Iterable[Task]) -> list[Task]:
    """Priority descending, then duration ascending. Stable for ties."""
    return sorted(tasks, key=lambda t: (-t.priority.rank, t.duration_minutes))


def schedule_all(
    tasks: Iterable[Task],
    schedule: Sequence[TimeBlock],
    committed: Iterable[Task],
    constraints: Mapping[str, TaskTypeConstraint] | None,
    now: datetime,
    lookahead_days: int = config.LOOKAHEAD_DAYS,
) -> list[Task]:
    """
    Schedule tasks in batch order.

    Returns new task records in processing order. Placed tasks carry
    scheduled_at, assigned_block_id and confidence; the rest carry
    scheduled_at=None and a failure_reason. Completed tasks come back
    unchanged at the end. Failed tasks are not retried.
    """
    tasks = list(tasks)
    batch_ids = {t.id for t in tasks}
    if len(batch_ids) < len(tasks):
        logger.warning("Batch has duplicate task ids; each copy is placed separately")
    # Tasks being (re)scheduled must not block themselves via a stale copy
    working = [t for t in committed if t.id not in batch_ids]

    completed = [t for t in tasks if t.status == TaskStatus.COMPLETED]
    results: list[Task] = []

    for task in batch_order(t for t in tasks if t.status != TaskStatus.COMPLETED):
        # Stale copies are gone from working, so a same-id entry is an earlier placement
        slot = resolve(
            task, schedule, working, constraints, now, lookahead_days, exclude_self=False
        )
        placed = task.with_result(slot)
        results.append(placed)
        if slot.success:
            working.append(placed)

    scheduled = sum(1 for t in results if t.scheduled_at is not None)
    logger.info("Batch scheduled %d of %d tasks", scheduled, len(results))
    return results + completed


def reschedule_task(
    task: Task,
    schedule: Sequence[TimeBlock],
    committed: Iterable[Task],
    constraints: Mapping[str, TaskTypeConstraint] | None,
    now: datetime,
) -> SlotResult:
    """
    Move an already placed task to the next available slot.

    The task is resolved in auto mode against every commitment except
    its own current placement.
    """
    others = [t for t in committed if t.id != task.id]
    candidate = replace(task, placement_mode=PlacementMode.AUTO, scheduled_at=None)
    return resolve(candidate, schedule, others, constraints, now)
