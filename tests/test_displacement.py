"""Tests for inserting fixed events and repairing displaced tasks."""

from datetime import date, datetime, time

from blockplan.conflicts import overlaps
from blockplan.displacement import apply_event, event_commitment, is_event_commitment
from blockplan.models import Event, PlacementMode, Priority, TaskStatus
from blockplan.report import validate_schedule
from tests.fixtures import committed, make_block


def feb(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 2, day, hour, minute)


MONDAY = date(2026, 2, 16)
EVENING = [make_block("18:00", "23:00")]


def evening_event(start=time(19, 0), end=time(21, 0)) -> Event:
    return Event(date=MONDAY, start=start, end=end, name="Dinner", id="ev1")


class TestEventCommitment:
    def test_covers_event_window(self):
        blocker = event_commitment(evening_event())
        assert blocker.id == "event:ev1"
        assert blocker.scheduled_at == feb(16, 19)
        assert blocker.duration_minutes == 120

    def test_overnight_event(self):
        event = Event(date=MONDAY, start=time(23, 0), end=time(1, 0), name="Flight")
        assert event.window.end == feb(17, 1)
        assert event_commitment(event).id == "event:Flight"

    def test_stored_form_recognized(self):
        assert is_event_commitment(event_commitment(evening_event()))
        assert not is_event_commitment(committed("a", feb(16, 19)))


class TestApplyEvent:
    def test_displaced_task_moves_past_event(self, now):
        tasks = [committed("a", feb(16, 19, 30))]
        report = apply_event(evening_event(), tasks, EVENING, {}, now)

        assert [t.id for t in report.displaced_tasks] == ["a"]
        (entry,) = report.rescheduled
        assert entry.new_scheduled_at == feb(16, 21)
        assert not overlaps(entry.new_scheduled_at, feb(16, 21, 30), feb(16, 19), feb(16, 21))
        assert report.unrepaired == []

    def test_untouched_tasks_keep_their_slots(self, now):
        tasks = [committed("early", feb(16, 18)), committed("a", feb(16, 19, 30))]
        report = apply_event(evening_event(), tasks, EVENING, {}, now)
        updated = {t.id: t for t in report.updated_tasks}
        assert updated["early"] is tasks[0]
        assert updated["a"].scheduled_at == feb(16, 21)
        assert [t.id for t in report.updated_tasks] == ["early", "a"]

    def test_repairs_by_priority(self, now):
        tasks = [
            committed("med", feb(16, 19), duration=30),
            committed("high", feb(16, 20), duration=60, priority=Priority.HIGH),
        ]
        report = apply_event(evening_event(), tasks, EVENING, {}, now)
        moved = {r.task_id: r.new_scheduled_at for r in report.rescheduled}
        assert [r.task_id for r in report.rescheduled] == ["high", "med"]
        assert moved == {"high": feb(16, 21), "med": feb(16, 22)}
        assert validate_schedule(report.updated_tasks).valid

    def test_completed_tasks_not_displaced(self, now):
        tasks = [committed("done", feb(16, 19, 30), status=TaskStatus.COMPLETED)]
        report = apply_event(evening_event(), tasks, EVENING, {}, now)
        assert report.displaced_tasks == []
        assert report.updated_tasks == tasks

    def test_stored_events_stay_put(self, now):
        call = Event(date=MONDAY, start=time(19, 30), end=time(20, 0), name="Call")
        tasks = [event_commitment(call)]
        report = apply_event(evening_event(), tasks, EVENING, {}, now)
        assert report.displaced_tasks == []
        assert report.updated_tasks == tasks

    def test_duplicate_id_outside_event_keeps_slot(self, now):
        tasks = [committed("a", feb(16, 18)), committed("a", feb(16, 19, 30))]
        report = apply_event(evening_event(), tasks, EVENING, {}, now)
        assert len(report.displaced_tasks) == 1
        first, second = report.updated_tasks
        assert first is tasks[0]
        assert second.scheduled_at == feb(16, 21)

    def test_unrepairable_task_reported(self, now):
        tasks = [committed("a", feb(16, 19, 30))]
        schedule = [make_block("19:00", "21:00")]
        report = apply_event(evening_event(), tasks, schedule, {}, now, lookahead_days=1)
        assert report.unrepaired == ["a"]
        (updated,) = report.updated_tasks
        assert updated.scheduled_at is None
        assert updated.failure_reason is not None

    def test_explicit_task_repaired_automatically(self, now):
        tasks = [
            committed(
                "a",
                feb(16, 19, 30),
                placement_mode=PlacementMode.SPECIFIC_DATETIME,
                specific_time=time(19, 30),
            )
        ]
        report = apply_event(evening_event(), tasks, EVENING, {}, now)
        (updated,) = report.updated_tasks
        assert updated.placement_mode == PlacementMode.AUTO
        assert updated.scheduled_at == feb(16, 21)

    def test_repair_never_before_now(self):
        tasks = [committed("a", feb(16, 19, 30))]
        later = feb(16, 21, 40)
        report = apply_event(evening_event(), tasks, EVENING, {}, later)
        assert report.rescheduled[0].new_scheduled_at == feb(16, 21, 45)

    def test_report_serializes(self, now):
        report = apply_event(evening_event(), [committed("a", feb(16, 19, 30))], EVENING, {}, now)
        data = report.to_dict()
        assert data["event"]["start"] == "2026-02-16T19:00:00"
        assert data["displaced_tasks"] == ["a"]
        assert data["rescheduled"][0]["new_scheduled_at"] == "2026-02-16T21:00:00"
