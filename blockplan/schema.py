"""
Schema Module - Pydantic models for caller-supplied records.

Templates, task-type constraints, tasks and events arrive as plain dicts
(YAML files, JSON payloads, legacy camelCase exports). These models turn
them into engine records.

Malformed fields fall back to documented defaults with a logged warning
instead of failing the record:
- unparseable time         -> DEFAULT_START (block end: start + 1 hour)
- bad duration             -> DEFAULT_DURATION_MINUTES
- unknown priority         -> medium
- unknown status           -> pending
- unknown placement mode   -> auto
- unknown flexibility      -> preferred
- unparseable preferred time or scheduled_at -> absent

Only a record that is not a mapping at all is skipped (logged as an error),
so one bad record never aborts a batch.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta
from enum import StrEnum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from blockplan import config
from blockplan.clock import DEFAULT_START_TIME, parse_hhmm, parse_weekday, try_parse_hhmm
from blockplan.models import (
    Event,
    Flexibility,
    PlacementMode,
    Priority,
    Task,
    TaskStatus,
    TaskTypeConstraint,
    TimeBlock,
)

logger = logging.getLogger(__name__)

# Values written by older clients
_PLACEMENT_ALIASES = {
    "immediate": PlacementMode.AUTO,
    "specific": PlacementMode.SPECIFIC_DATETIME,
    "specificdatetime": PlacementMode.SPECIFIC_DATETIME,
    "delay": PlacementMode.DELAY_FROM_NOW,
    "delayfromnow": PlacementMode.DELAY_FROM_NOW,
}


def _lenient_enum(enum_cls: type[StrEnum], value: Any, default: StrEnum, field: str) -> StrEnum:
    if value is None or value == "":
        return default
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning("Unknown %s %r, using %s", field, value, default.value)
        return default


def _sexagesimal(value: Any) -> Any:
    # YAML 1.1 reads an unquoted 9:30 as the base-60 integer 570
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 1440:
        return time(value // 60, value % 60)
    return value


def _optional_time(value: Any, field: str) -> time | None:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    parsed = try_parse_hhmm(value) if isinstance(value, str) else None
    if parsed is None:
        logger.warning("Ignoring unparseable %s %r", field, value)
    return parsed


def _timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, str) and len(value.strip()) > 10:
        try:
            return datetime.fromisoformat(value.strip()).replace(tzinfo=None)
        except ValueError:
            return None
    return None


def _weekday_set(value: Any) -> frozenset[int] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    days = set()
    for item in value:
        day = parse_weekday(item)
        if day is None:
            logger.warning("Ignoring unknown weekday %r", item)
        else:
            days.add(day)
    return frozenset(days)


# =============================================================================
# TEMPLATE
# =============================================================================


class BlockRecord(BaseModel):
    """One block of a daily template."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    start: time = DEFAULT_START_TIME
    end: time | None = None
    activity_type: str | None = Field(
        default=None, validation_alias=AliasChoices("activity_type", "type", "activityType")
    )
    category: str | None = None
    allowed_activity_types: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "allowed_activity_types", "allowedTaskTypes", "allowedActivityTypes"
        ),
    )
    flexibility: Flexibility = Flexibility.PREFERRED
    label: str = ""

    @field_validator("id", "activity_type", "category", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return None if v is None else str(v)

    @field_validator("label", mode="before")
    @classmethod
    def coerce_label(cls, v):
        return "" if v is None else str(v)

    @field_validator("start", mode="before")
    @classmethod
    def coerce_start(cls, v):
        return parse_hhmm(_sexagesimal(v))

    @field_validator("end", mode="before")
    @classmethod
    def coerce_end(cls, v):
        return _optional_time(_sexagesimal(v), "block end")

    @field_validator("flexibility", mode="before")
    @classmethod
    def coerce_flexibility(cls, v):
        return _lenient_enum(Flexibility, v, Flexibility.PREFERRED, "flexibility")

    @field_validator("allowed_activity_types", mode="before")
    @classmethod
    def coerce_allowed(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(x) for x in v]

    @model_validator(mode="after")
    def default_end(self):
        """A block without a usable end lasts one hour."""
        if self.end is None:
            self.end = (datetime.combine(date.min, self.start) + timedelta(hours=1)).time()
        return self

    def to_model(self, fallback_id: str) -> TimeBlock:
        return TimeBlock(
            id=self.id or fallback_id,
            start=self.start,
            end=self.end,
            activity_type=self.activity_type,
            category=self.category,
            allowed_activity_types=frozenset(self.allowed_activity_types),
            flexibility=self.flexibility,
            label=self.label,
        )


class ConstraintRecord(BaseModel):
    """
    Scheduling policy of one activity type.

    Accepts both the flat form and the legacy task type shape, where the
    preferred times sit under a nested "constraints" mapping.
    """

    model_config = ConfigDict(extra="ignore")

    preferred_start: time | None = Field(
        default=None, validation_alias=AliasChoices("preferred_start", "preferredTimeStart")
    )
    preferred_end: time | None = Field(
        default=None, validation_alias=AliasChoices("preferred_end", "preferredTimeEnd")
    )
    allowed_weekdays: frozenset[int] | None = Field(
        default=None,
        validation_alias=AliasChoices("allowed_weekdays", "allowed_days", "allowedDays"),
    )

    @model_validator(mode="before")
    @classmethod
    def flatten_nested(cls, data):
        if isinstance(data, Mapping) and isinstance(data.get("constraints"), Mapping):
            merged = dict(data["constraints"])
            merged.update({k: v for k, v in data.items() if k != "constraints"})
            return merged
        return data

    @field_validator("preferred_start", "preferred_end", mode="before")
    @classmethod
    def coerce_preferred(cls, v, info):
        return _optional_time(_sexagesimal(v), info.field_name)

    @field_validator("allowed_weekdays", mode="before")
    @classmethod
    def coerce_weekdays(cls, v):
        return _weekday_set(v)

    def to_model(self) -> TaskTypeConstraint:
        return TaskTypeConstraint(
            preferred_start=self.preferred_start,
            preferred_end=self.preferred_end,
            allowed_weekdays=self.allowed_weekdays,
        )


class TemplateRecord(BaseModel):
    """A template document. Blocks and task types stay raw until parsed one by one."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    blocks: list[Any] = Field(
        default_factory=list, validation_alias=AliasChoices("blocks", "timeBlocks")
    )
    task_types: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("task_types", "taskTypes")
    )

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v):
        return "" if v is None else str(v)

    @field_validator("blocks", mode="before")
    @classmethod
    def coerce_blocks(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            logger.error("Template blocks must be a list, got %s", type(v).__name__)
            return []
        return v

    @field_validator("task_types", mode="before")
    @classmethod
    def coerce_task_types(cls, v):
        if v is None:
            return {}
        if isinstance(v, list):
            # Legacy list form: [{id: work, allowedDays: [...], constraints: {...}}]
            return {str(t["id"]): t for t in v if isinstance(t, Mapping) and t.get("id")}
        if not isinstance(v, Mapping):
            logger.error("Template task_types must be a mapping, got %s", type(v).__name__)
            return {}
        return {str(k): t for k, t in v.items()}


# =============================================================================
# TASKS & EVENTS
# =============================================================================


class TaskRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "key"))
    title: str = Field(default="", validation_alias=AliasChoices("title", "text", "name"))
    activity_type: str = Field(
        default=config.BUFFER_ACTIVITY,
        validation_alias=AliasChoices("activity_type", "activityType", "primaryType", "taskType"),
    )
    duration_minutes: int = Field(
        default=config.DEFAULT_DURATION_MINUTES,
        validation_alias=AliasChoices("duration_minutes", "duration", "durationMinutes"),
    )
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    placement_mode: PlacementMode = Field(
        default=PlacementMode.AUTO,
        validation_alias=AliasChoices("placement_mode", "placementMode", "schedulingPreference"),
    )
    specific_day: date | int | None = Field(
        default=None, validation_alias=AliasChoices("specific_day", "specificDay")
    )
    specific_time: time | None = Field(
        default=None, validation_alias=AliasChoices("specific_time", "specificTime")
    )
    delay_minutes: int = Field(
        default=0, validation_alias=AliasChoices("delay_minutes", "delayMinutes")
    )
    scheduled_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("scheduled_at", "scheduledAt", "scheduledTime"),
    )
    assigned_block_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def split_day_timestamp(cls, data):
        """A timestamp given as the specific day also sets the time when none is given."""
        if not isinstance(data, Mapping):
            return data
        key = next((k for k in ("specific_day", "specificDay") if k in data), None)
        stamp = _timestamp(data[key]) if key else None
        if stamp is None:
            return data
        merged = dict(data)
        merged[key] = stamp.date()
        if all(merged.get(k) in (None, "") for k in ("specific_time", "specificTime")):
            merged["specific_time"] = stamp.time()
        return merged

    @field_validator("id", "assigned_block_id", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return None if v is None or v == "" else str(v)

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v):
        return "" if v is None else str(v)

    @field_validator("activity_type", mode="before")
    @classmethod
    def coerce_activity(cls, v):
        return str(v) if v else config.BUFFER_ACTIVITY

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def coerce_duration(cls, v):
        try:
            minutes = int(v)
        except (TypeError, ValueError):
            minutes = 0
        if minutes <= 0:
            logger.warning(
                "Invalid duration %r, using %d", v, config.DEFAULT_DURATION_MINUTES
            )
            return config.DEFAULT_DURATION_MINUTES
        return minutes

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v):
        return _lenient_enum(Priority, v, Priority.MEDIUM, "priority")

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        return _lenient_enum(TaskStatus, v, TaskStatus.PENDING, "status")

    @field_validator("placement_mode", mode="before")
    @classmethod
    def coerce_placement(cls, v):
        if isinstance(v, str):
            key = v.strip().lower().replace("_", "").replace("-", "")
            if key in _PLACEMENT_ALIASES:
                return _PLACEMENT_ALIASES[key]
        return _lenient_enum(PlacementMode, v, PlacementMode.AUTO, "placement mode")

    @field_validator("specific_day", mode="before")
    @classmethod
    def coerce_day(cls, v):
        """ISO date or weekday name (returned as weekday index)."""
        if isinstance(v, datetime):
            return v.date()
        if v is None or v == "" or isinstance(v, date):
            return v or None
        if isinstance(v, str):
            try:
                return date.fromisoformat(v.strip()[:10])
            except ValueError:
                pass
        weekday = parse_weekday(v)
        if weekday is None:
            logger.warning("Ignoring unparseable specific day %r", v)
        return weekday

    @field_validator("specific_time", mode="before")
    @classmethod
    def coerce_time(cls, v):
        return _optional_time(_sexagesimal(v), "specific time")

    @field_validator("delay_minutes", mode="before")
    @classmethod
    def coerce_delay(cls, v):
        try:
            return max(int(v or 0), 0)
        except (TypeError, ValueError):
            logger.warning("Invalid delay %r, using 0", v)
            return 0

    @field_validator("scheduled_at", mode="before")
    @classmethod
    def coerce_scheduled(cls, v):
        if v is None or v == "" or isinstance(v, datetime):
            return v or None
        try:
            parsed = datetime.fromisoformat(str(v))
        except ValueError:
            logger.warning("Ignoring unparseable scheduled_at %r", v)
            return None
        # Wall-clock only: an offset is dropped, not converted
        return parsed.replace(tzinfo=None)

    def to_model(self, fallback_id: str) -> Task:
        specific_date = self.specific_day if isinstance(self.specific_day, date) else None
        specific_weekday = self.specific_day if isinstance(self.specific_day, int) else None
        return Task(
            id=self.id or fallback_id,
            activity_type=self.activity_type,
            duration_minutes=self.duration_minutes,
            priority=self.priority,
            status=self.status,
            title=self.title,
            placement_mode=self.placement_mode,
            specific_date=specific_date,
            specific_weekday=specific_weekday,
            specific_time=self.specific_time,
            delay_minutes=self.delay_minutes,
            scheduled_at=self.scheduled_at,
            assigned_block_id=self.assigned_block_id,
        )


class EventRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    event_date: date = Field(validation_alias=AliasChoices("date", "event_date"))
    start: time
    end: time

    @field_validator("id", "name", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("start", "end", mode="before")
    @classmethod
    def coerce_times(cls, v):
        return parse_hhmm(_sexagesimal(v))

    def to_model(self) -> Event:
        return Event(
            date=self.event_date, start=self.start, end=self.end, name=self.name, id=self.id
        )


# =============================================================================
# PARSERS
# =============================================================================


def _unique_id(preferred: str, taken: set[str]) -> str:
    candidate, n = preferred, 1
    while candidate in taken:
        n += 1
        candidate = f"{preferred}-{n}"
    taken.add(candidate)
    return candidate


def parse_blocks(records: Iterable[Any]) -> list[TimeBlock]:
    """
    Template blocks from raw records, skipping records that are not mappings.

    Blocks without an id get "block-<index>", made unique against the ids
    the records do carry.
    """
    parsed = []
    for index, raw in enumerate(records or []):
        try:
            parsed.append((index, BlockRecord.model_validate(raw)))
        except ValidationError as exc:
            logger.error("Skipping block record %d: %s", index, exc)
    taken = {r.id for _, r in parsed if r.id}
    return [r.to_model(r.id or _unique_id(f"block-{i}", taken)) for i, r in parsed]


def parse_constraints(records: Mapping[str, Any] | None) -> dict[str, TaskTypeConstraint]:
    """Constraint per activity type from a {type: record} mapping."""
    constraints = {}
    for activity_type, raw in (records or {}).items():
        try:
            record = ConstraintRecord.model_validate(raw or {})
        except ValidationError as exc:
            logger.error("Skipping constraint for %r: %s", activity_type, exc)
            continue
        constraints[str(activity_type)] = record.to_model()
    return constraints


def parse_tasks(records: Iterable[Any]) -> list[Task]:
    """
    Tasks from raw records, skipping records that are not mappings.

    Tasks without an id get "task-<index>", made unique against the ids the
    records do carry.
    """
    parsed = []
    for index, raw in enumerate(records or []):
        try:
            parsed.append((index, TaskRecord.model_validate(raw)))
        except ValidationError as exc:
            logger.error("Skipping task record %d: %s", index, exc)
    taken = {r.id for _, r in parsed if r.id}
    return [r.to_model(r.id or _unique_id(f"task-{i}", taken)) for i, r in parsed]


def parse_event(raw: Mapping[str, Any]) -> Event:
    """Event from a raw record. Raises ValidationError when the date is missing."""
    return EventRecord.model_validate(raw).to_model()
