"""Tests for loading templates and task files."""

import json
import logging
from datetime import date, datetime, time

import pytest

from blockplan import paths
from blockplan.models import PlacementMode
from blockplan.resolver import resolve
from blockplan.template_store import (
    dump_tasks,
    load_tasks,
    load_template,
    template_from_dict,
)
from tests.fixtures import committed, make_task

TEMPLATE_YAML = """\
name: Test week
blocks:
  - id: deep
    start: "09:00"
    end: "12:00"
    activity_type: work
  - id: night
    start: "22:00"
    end: "06:30"
    activity_type: sleep
task_types:
  work:
    preferred_start: "09:00"
    preferred_end: "17:00"
    allowed_days: [Monday, Tuesday]
"""


@pytest.fixture
def template_file(tmp_path):
    path = tmp_path / "template.yaml"
    path.write_text(TEMPLATE_YAML)
    return path


class TestLoadTemplate:
    def test_explicit_path(self, template_file):
        template = load_template(template_file)
        assert template.name == "Test week"
        assert [b.id for b in template.blocks] == ["deep", "night"]
        assert template.blocks[1].duration_minutes == 510
        assert template.constraints["work"].allowed_weekdays == frozenset({0, 1})

    def test_explicit_path_must_exist(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_template(tmp_path / "missing.yaml")

    def test_bundled_default(self):
        template = load_template()
        assert template.name == "Balanced weekday"
        assert "deep-work" in [b.id for b in template.blocks]
        assert template.constraints["work"].allowed_weekdays == frozenset(range(5))
        assert template.constraints["sleep"].preferred_end == time(6, 0)

    def test_user_template_preferred(self):
        config_dir = paths.config_dir()
        config_dir.mkdir(parents=True)
        (config_dir / "template.yaml").write_text("name: Mine\nblocks: []\n")
        assert load_template().name == "Mine"

    def test_missing_override_gives_empty_template(self, monkeypatch, tmp_path, caplog):
        monkeypatch.setenv("BLOCKPLAN_TEMPLATE", str(tmp_path / "nope.yaml"))
        with caplog.at_level(logging.WARNING):
            template = load_template()
        assert template.blocks == ()
        assert "Default template not found" in caplog.text

    def test_broken_default_gives_empty_template(self, monkeypatch, tmp_path, caplog):
        broken = tmp_path / "broken.yaml"
        broken.write_text("blocks: [unclosed\n")
        monkeypatch.setenv("BLOCKPLAN_TEMPLATE", str(broken))
        with caplog.at_level(logging.ERROR):
            template = load_template()
        assert template.blocks == ()
        assert "Failed to load default template" in caplog.text

    def test_json_template(self, tmp_path):
        path = tmp_path / "template.json"
        path.write_text(
            json.dumps({"blocks": [{"start": "07:00", "end": "08:00", "type": "exercise"}]})
        )
        (block,) = load_template(path).blocks
        assert block.activity_type == "exercise"


class TestTemplateFromDict:
    def test_legacy_document(self):
        template = template_from_dict(
            {
                "timeBlocks": [{"id": "b1", "start": "13:00", "end": "17:00", "type": "work"}],
                "taskTypes": [
                    {
                        "id": "work",
                        "allowedDays": ["Wednesday"],
                        "constraints": {"preferredTimeStart": "14:00"},
                    }
                ],
            }
        )
        assert template.blocks[0].id == "b1"
        work = template.constraints["work"]
        assert work.allowed_weekdays == frozenset({2})
        assert work.preferred_start == time(14, 0)

    def test_not_a_mapping(self, caplog):
        with caplog.at_level(logging.ERROR):
            template = template_from_dict(["a", "b"])
        assert template.blocks == ()
        assert "not a mapping" in caplog.text

    def test_malformed_sections_dropped(self, caplog):
        with caplog.at_level(logging.ERROR):
            template = template_from_dict({"name": 5, "blocks": "nope", "task_types": 3})
        assert template.name == "5"
        assert template.blocks == ()
        assert template.constraints == {}
        assert "blocks must be a list" in caplog.text

    def test_empty_document(self):
        assert template_from_dict(None).blocks == ()


class TestTaskFiles:
    def test_task_list(self, tmp_path):
        path = tmp_path / "tasks.yaml"
        path.write_text("- id: a\n  duration: 45\n- id: b\n")
        assert [t.id for t in load_tasks(path)] == ["a", "b"]

    def test_tasks_mapping(self, tmp_path):
        path = tmp_path / "tasks.json"
        path.write_text(json.dumps({"tasks": [{"id": "a", "activity_type": "work"}]}))
        (task,) = load_tasks(path)
        assert task.activity_type == "work"

    def test_no_task_list(self, tmp_path):
        path = tmp_path / "tasks.yaml"
        path.write_text("tasks: 5\n")
        assert load_tasks(path) == []

    def test_dump_keeps_placement(self, tmp_path):
        path = tmp_path / "out.yaml"
        tasks = [committed("a", datetime(2026, 2, 16, 9, 0), duration=45), make_task("b")]
        dump_tasks(tasks, path)
        loaded = {t.id: t for t in load_tasks(path)}
        assert loaded["a"].scheduled_at == datetime(2026, 2, 16, 9, 0)
        assert loaded["a"].duration_minutes == 45
        assert loaded["b"].scheduled_at is None

    def test_dump_keeps_explicit_placement(self, tmp_path, now):
        path = tmp_path / "out.yaml"
        specific = PlacementMode.SPECIFIC_DATETIME
        tasks = [
            make_task(
                "on-date",
                placement_mode=specific,
                specific_date=date(2026, 2, 18),
                specific_time=time(15, 0),
            ),
            make_task("on-day", placement_mode=specific, specific_weekday=2),
            make_task("later", placement_mode=PlacementMode.DELAY_FROM_NOW, delay_minutes=45),
        ]
        dump_tasks(tasks, path)
        loaded = {t.id: t for t in load_tasks(path)}

        assert loaded["on-date"].specific_date == date(2026, 2, 18)
        assert loaded["on-date"].specific_time == time(15, 0)
        assert loaded["on-day"].specific_weekday == 2
        assert loaded["on-day"].specific_time is None
        assert loaded["later"].delay_minutes == 45
        slot = resolve(loaded["on-date"], [], [], {}, now)
        assert slot.scheduled_at == datetime(2026, 2, 18, 15, 0)
