"""
Core records for the scheduling engine.

Objects:
- Task (unit of work, with engine-set placement fields)
- TimeBlock (one interval of a recurring daily template)
- TaskTypeConstraint (per activity type policy)
- Event (one-off fixed commitment)
- SlotResult / RescheduleEntry / DisplacementReport (engine outputs)

All records are immutable. The engine returns new records and never
mutates what the caller passes in.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from enum import StrEnum

from blockplan import config
from blockplan.clock import WEEKDAY_NAMES, block_minutes


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class TaskStatus(StrEnum):
    PENDING = "pending"
    PAUSED = "paused"
    COMPLETED = "completed"


class PlacementMode(StrEnum):
    AUTO = "auto"  # Search template blocks
    SPECIFIC_DATETIME = "specific_datetime"  # Caller-chosen day and/or time
    DELAY_FROM_NOW = "delay_from_now"  # Fixed offset from now


class Flexibility(StrEnum):
    FIXED = "fixed"  # Never moved
    PREFERRED = "preferred"  # Soft target
    FLEXIBLE = "flexible"  # Fills gaps


@dataclass(frozen=True)
class Task:
    """A unit of work to place on the calendar."""

    id: str
    activity_type: str
    duration_minutes: int = config.DEFAULT_DURATION_MINUTES
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    title: str = ""

    # Explicit placement
    placement_mode: PlacementMode = PlacementMode.AUTO
    specific_date: date | None = None
    specific_weekday: int | None = None  # 0 = Monday
    specific_time: time | None = None
    delay_minutes: int = 0

    # Set by the engine
    scheduled_at: datetime | None = None
    assigned_block_id: str | None = None
    confidence: int = 0
    failure_reason: str | None = None

    @property
    def end_at(self) -> datetime | None:
        if self.scheduled_at is None:
            return None
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        """Scheduled and still occupying its slot."""
        return self.scheduled_at is not None and self.status != TaskStatus.COMPLETED

    def with_result(self, result: SlotResult) -> Task:
        """Return a copy carrying the placement (or failure) in result."""
        return replace(
            self,
            scheduled_at=result.scheduled_at,
            assigned_block_id=result.assigned_block_id,
            confidence=result.confidence,
            failure_reason=result.failure_reason,
        )

    def _specific_day(self) -> str | None:
        if self.specific_date is not None:
            return self.specific_date.isoformat()
        if self.specific_weekday is not None:
            return WEEKDAY_NAMES[self.specific_weekday]
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "activity_type": self.activity_type,
            "duration_minutes": self.duration_minutes,
            "priority": self.priority.value,
            "status": self.status.value,
            "placement_mode": self.placement_mode.value,
            "specific_day": self._specific_day(),
            "specific_time": self.specific_time.strftime("%H:%M") if self.specific_time else None,
            "delay_minutes": self.delay_minutes,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "assigned_block_id": self.assigned_block_id,
            "confidence": self.confidence,
            "failure_reason": self.failure_reason,
        }


@dataclass(frozen=True)
class TimeBlock:
    """
    One interval of a recurring daily template.

    A block whose end is at or before its start crosses midnight.
    """

    id: str
    start: time
    end: time
    activity_type: str | None = None
    category: str | None = None
    allowed_activity_types: frozenset[str] = frozenset()
    flexibility: Flexibility = Flexibility.PREFERRED
    label: str = ""

    @property
    def crosses_midnight(self) -> bool:
        return self.end <= self.start

    @property
    def duration_minutes(self) -> int:
        """Effective duration, (end - start) mod 1440. Equal start and end is a full day."""
        return block_minutes(self.start, self.end)

    def accepts(self, activity_type: str) -> bool:
        return (
            self.activity_type == activity_type
            or self.category == activity_type
            or activity_type in self.allowed_activity_types
        )


@dataclass(frozen=True)
class TaskTypeConstraint:
    """
    Scheduling policy for one activity type.

    allowed_weekdays: None means any day, an empty set means never eligible.
    """

    preferred_start: time | None = None
    preferred_end: time | None = None
    allowed_weekdays: frozenset[int] | None = None

    @property
    def is_overnight(self) -> bool:
        return (
            self.preferred_start is not None
            and self.preferred_end is not None
            and self.preferred_end <= self.preferred_start
        )


@dataclass(frozen=True)
class Event:
    """A one-off fixed commitment that takes precedence over blocks and tasks."""

    date: date
    start: time
    end: time
    name: str = ""
    id: str = ""

    @property
    def flexibility(self) -> Flexibility:
        return Flexibility.FIXED

    @property
    def window(self) -> ScheduleWindow:
        start = datetime.combine(self.date, self.start)
        end = datetime.combine(self.date, self.end)
        if end <= start:
            end += timedelta(days=1)
        return ScheduleWindow(start, end)


@dataclass(frozen=True)
class ScheduleWindow:
    """A concrete half-open [start, end) interval."""

    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class SlotResult:
    """Outcome of resolving one task. success is False when no slot exists."""

    task_id: str
    scheduled_at: datetime | None = None
    assigned_block_id: str | None = None
    confidence: int = 0
    failure_reason: str | None = None
    reason: str = ""

    @property
    def success(self) -> bool:
        return self.scheduled_at is not None

    @classmethod
    def failure(cls, task_id: str, failure_reason: str) -> SlotResult:
        return cls(task_id=task_id, failure_reason=failure_reason)

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "assigned_block_id": self.assigned_block_id,
            "confidence": self.confidence,
            "failure_reason": self.failure_reason,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class RescheduleEntry:
    task_id: str
    new_scheduled_at: datetime | None
    assigned_block_id: str | None = None
    failure_reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "new_scheduled_at": (
                self.new_scheduled_at.isoformat() if self.new_scheduled_at else None
            ),
            "assigned_block_id": self.assigned_block_id,
            "failure_reason": self.failure_reason,
        }


@dataclass(frozen=True)
class DisplacementReport:
    """What an event evicted and where the evicted tasks went."""

    event: Event
    displaced_tasks: list[Task] = field(default_factory=list)
    rescheduled: list[RescheduleEntry] = field(default_factory=list)
    updated_tasks: list[Task] = field(default_factory=list)

    @property
    def unrepaired(self) -> list[str]:
        return [r.task_id for r in self.rescheduled if r.new_scheduled_at is None]

    def to_dict(self) -> dict:
        window = self.event.window
        return {
            "event": {
                "id": self.event.id,
                "name": self.event.name,
                "start": window.start.isoformat(),
                "end": window.end.isoformat(),
            },
            "displaced_tasks": [t.id for t in self.displaced_tasks],
            "rescheduled": [r.to_dict() for r in self.rescheduled],
        }
