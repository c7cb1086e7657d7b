"""
Template Store - load schedule templates and task lists from YAML.

A template document looks like:

    name: Weekday
    blocks:
      - id: deep-work
        start: "09:00"
        end: "12:00"
        activity_type: work
        flexibility: fixed
    task_types:
      work:
        preferred_start: "09:00"
        preferred_end: "17:00"
        allowed_days: [Monday, Tuesday, Wednesday, Thursday, Friday]

Legacy exports (timeBlocks / taskTypes lists with camelCase keys) are
accepted too. JSON files load the same way, JSON being a YAML subset.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from blockplan import paths
from blockplan.models import Task, TaskTypeConstraint, TimeBlock
from blockplan.schema import TemplateRecord, parse_blocks, parse_constraints, parse_tasks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleTemplate:
    """A named, ordered set of blocks plus the constraints of its activity types."""

    name: str = ""
    blocks: tuple[TimeBlock, ...] = ()
    constraints: dict[str, TaskTypeConstraint] = field(default_factory=dict)


def read_document(path: Path) -> Any:
    with open(path) as f:
        return yaml.safe_load(f)


def template_from_dict(data: Mapping[str, Any] | None) -> ScheduleTemplate:
    if not isinstance(data, Mapping):
        if data is not None:
            logger.error("Template document is not a mapping, using an empty template")
        return ScheduleTemplate()

    record = TemplateRecord.model_validate(data)
    return ScheduleTemplate(
        name=record.name,
        blocks=tuple(parse_blocks(record.blocks)),
        constraints=parse_constraints(record.task_types),
    )


def load_template(path: Path | str | None = None) -> ScheduleTemplate:
    """
    Load a template.

    An explicit path must exist. Without one the default template is used,
    falling back to an empty template if it is missing or unreadable.
    """
    if path is not None:
        return template_from_dict(read_document(Path(path)))

    default = paths.default_template_path()
    if not default.exists():
        logger.warning("Default template not found at %s, using an empty template", default)
        return ScheduleTemplate()
    try:
        return template_from_dict(read_document(default))
    except (yaml.YAMLError, OSError) as exc:
        logger.error("Failed to load default template %s: %s", default, exc)
        return ScheduleTemplate()


def tasks_from_document(data: Any) -> list[Task]:
    if isinstance(data, Mapping):
        data = data.get("tasks", data.get("items"))
    if data is None:
        return []
    if not isinstance(data, list):
        logger.error("Task document holds no task list")
        return []
    return parse_tasks(data)


def load_tasks(path: Path | str) -> list[Task]:
    """Tasks from a YAML/JSON file holding a list or a {tasks: [...]} mapping."""
    return tasks_from_document(read_document(Path(path)))


def dump_tasks(tasks: list[Task], path: Path | str) -> None:
    with open(path, "w") as f:
        yaml.safe_dump({"tasks": [t.to_dict() for t in tasks]}, f, sort_keys=False)
