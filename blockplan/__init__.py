"""
blockplan - template-based task scheduling engine.

Objects:
- Task (unit of work, placed by the engine)
- TimeBlock (recurring daily template interval)
- TaskTypeConstraint (preferred hours and allowed weekdays per activity type)
- Event (one-off fixed commitment)

Invariants:
- Placed tasks never overlap an active commitment
- Every entry point takes an explicit "now"; nothing reads the clock
- Inputs are never mutated; new records are returned
- No slot is a result (failure_reason), not an exception
"""

from .batch import batch_order, reschedule_task, schedule_all
from .conflicts import find_conflicts, has_conflict
from .displacement import apply_event, event_commitment, is_event_commitment
from .models import (
    DisplacementReport,
    Event,
    Flexibility,
    PlacementMode,
    Priority,
    RescheduleEntry,
    ScheduleWindow,
    SlotResult,
    Task,
    TaskStatus,
    TaskTypeConstraint,
    TimeBlock,
)
from .report import ValidationResult, schedule_utilization, validate_schedule
from .resolver import NO_AVAILABLE_SLOT, NO_MATCHING_BLOCK, resolve, suggest_best_time
from .template_store import ScheduleTemplate, load_tasks, load_template
from .windows import expand_block_windows, intersect_window

__all__ = [
    "Task",
    "TimeBlock",
    "TaskTypeConstraint",
    "Event",
    "ScheduleWindow",
    "SlotResult",
    "RescheduleEntry",
    "DisplacementReport",
    "Priority",
    "TaskStatus",
    "PlacementMode",
    "Flexibility",
    "expand_block_windows",
    "intersect_window",
    "has_conflict",
    "find_conflicts",
    "resolve",
    "suggest_best_time",
    "NO_MATCHING_BLOCK",
    "NO_AVAILABLE_SLOT",
    "schedule_all",
    "batch_order",
    "reschedule_task",
    "apply_event",
    "event_commitment",
    "is_event_commitment",
    "validate_schedule",
    "schedule_utilization",
    "ValidationResult",
    "ScheduleTemplate",
    "load_template",
    "load_tasks",
]
