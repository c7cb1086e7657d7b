"""
Schedule reporting - invariant checks and template utilization.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from blockplan.conflicts import overlaps
from blockplan.models import Task, TaskStatus, TimeBlock

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    valid: bool
    issues: list[str]
    stats: dict


def validate_schedule(tasks: Iterable[Task]) -> ValidationResult:
    """
    Check that scheduling invariants hold for a task collection.

    Invariants:
    1. No two active tasks overlap
    2. Every task id appears once
    3. Scheduled tasks have a positive duration

    Returns:
        ValidationResult with issues and stats
    """
    tasks = list(tasks)
    issues = []

    seen = set()
    for t in tasks:
        if t.id in seen:
            issues.append(f"Duplicate task id {t.id}")
        seen.add(t.id)
        if t.scheduled_at is not None and t.duration_minutes <= 0:
            issues.append(f"Task {t.id} has non-positive duration {t.duration_minutes}")

    active = sorted((t for t in tasks if t.is_active), key=lambda t: t.scheduled_at)
    overlap_count = 0
    for i, a in enumerate(active):
        for b in active[i + 1 :]:
            if b.scheduled_at >= a.end_at:
                break
            if overlaps(a.scheduled_at, a.end_at, b.scheduled_at, b.end_at):
                overlap_count += 1
                issues.append(
                    f"Overlap: {a.id} [{a.scheduled_at:%Y-%m-%d %H:%M}-{a.end_at:%H:%M}) "
                    f"and {b.id} [{b.scheduled_at:%Y-%m-%d %H:%M}-{b.end_at:%H:%M})"
                )

    stats = {
        "total_tasks": len(tasks),
        "scheduled_tasks": len(active),
        "unscheduled_tasks": sum(
            1 for t in tasks if t.scheduled_at is None and t.status != TaskStatus.COMPLETED
        ),
        "completed_tasks": sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
        "overlaps": overlap_count,
        "issues": len(issues),
    }

    if issues:
        logger.info("Schedule validation found %d issue(s)", len(issues))
    return ValidationResult(valid=len(issues) == 0, issues=issues, stats=stats)


def schedule_utilization(schedule: Sequence[TimeBlock], tasks: Iterable[Task]) -> dict[str, dict]:
    """
    Daily template minutes versus scheduled task minutes, per activity type.

    Tasks count toward their own activity type only when the template has
    blocks of that type.
    """
    stats: dict[str, dict] = {}

    for block in schedule:
        key = block.activity_type or block.category or "unassigned"
        entry = stats.setdefault(
            key, {"total_minutes": 0, "scheduled_minutes": 0, "utilization": 0, "task_count": 0}
        )
        entry["total_minutes"] += block.duration_minutes

    for t in tasks:
        if not t.is_active or t.activity_type not in stats:
            continue
        stats[t.activity_type]["scheduled_minutes"] += t.duration_minutes
        stats[t.activity_type]["task_count"] += 1

    for entry in stats.values():
        if entry["total_minutes"] > 0:
            entry["utilization"] = round(entry["scheduled_minutes"] / entry["total_minutes"] * 100)

    return stats
