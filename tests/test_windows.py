"""Tests for block window expansion and constraint intersection."""

import inspect
from datetime import datetime, time
from itertools import islice

from blockplan.models import ScheduleWindow, TaskTypeConstraint
from blockplan.windows import contains, expand_block_windows, intersect_window
from tests.fixtures import make_block


def _window(start: str, end: str, day: int = 16, end_day: int | None = None) -> ScheduleWindow:
    sh, sm = map(int, start.split(":"))
    eh, em = map(int, end.split(":"))
    return ScheduleWindow(
        datetime(2026, 2, day, sh, sm),
        datetime(2026, 2, end_day or day, eh, em),
    )


class TestExpandBlockWindows:
    def test_one_window_per_day(self, now):
        windows = list(expand_block_windows(make_block("09:00", "12:00"), now))
        assert len(windows) == 7
        assert windows[0] == _window("09:00", "12:00")
        assert windows[-1] == _window("09:00", "12:00", day=22)

    def test_is_lazy(self, now):
        windows = expand_block_windows(make_block("09:00", "12:00"), now)
        assert inspect.isgenerator(windows)
        assert list(islice(windows, 2))[1] == _window("09:00", "12:00", day=17)

    def test_skips_window_ending_at_now(self):
        noon = datetime(2026, 2, 16, 12, 0)
        windows = list(expand_block_windows(make_block("09:00", "12:00"), noon))
        assert len(windows) == 6
        assert windows[0].start.day == 17

    def test_keeps_window_in_progress(self):
        mid = datetime(2026, 2, 16, 10, 0)
        windows = list(expand_block_windows(make_block("09:00", "12:00"), mid))
        assert windows[0] == _window("09:00", "12:00")

    def test_midnight_crossing_block(self, now):
        block = make_block("22:00", "06:30", activity_type="sleep")
        first = next(expand_block_windows(block, now))
        assert first == _window("22:00", "06:30", day=16, end_day=17)
        assert first.duration_minutes == 510
        assert block.duration_minutes == 510
        assert block.crosses_midnight

    def test_lookahead_respected(self, now):
        windows = list(expand_block_windows(make_block("09:00", "12:00"), now, lookahead_days=3))
        assert [w.start.day for w in windows] == [16, 17, 18]


class TestIntersectWindow:
    def test_no_constraint_passes_through(self):
        window = _window("09:00", "18:00")
        assert intersect_window(window, None) is window

    def test_disallowed_weekday(self):
        # 2026-02-16 is a Monday
        constraint = TaskTypeConstraint(allowed_weekdays=frozenset({1, 2}))
        assert intersect_window(_window("09:00", "18:00"), constraint) is None

    def test_allowed_weekday(self):
        constraint = TaskTypeConstraint(allowed_weekdays=frozenset({0}))
        assert intersect_window(_window("09:00", "18:00"), constraint) == _window("09:00", "18:00")

    def test_empty_weekday_set_never_eligible(self):
        constraint = TaskTypeConstraint(allowed_weekdays=frozenset())
        assert intersect_window(_window("09:00", "18:00"), constraint) is None

    def test_preferred_range_narrows(self):
        constraint = TaskTypeConstraint(preferred_start=time(14, 0), preferred_end=time(16, 0))
        assert intersect_window(_window("09:00", "18:00"), constraint) == _window("14:00", "16:00")

    def test_preferred_start_only_inside_overnight_block(self):
        constraint = TaskTypeConstraint(preferred_start=time(23, 0))
        window = _window("22:00", "06:30", end_day=17)
        assert intersect_window(window, constraint) == _window("23:00", "06:30", end_day=17)

    def test_overnight_preferred_range(self):
        constraint = TaskTypeConstraint(preferred_start=time(22, 0), preferred_end=time(6, 0))
        window = _window("21:00", "07:00", end_day=17)
        assert intersect_window(window, constraint) == _window("22:00", "06:00", end_day=17)

    def test_overnight_preferred_range_after_midnight(self):
        constraint = TaskTypeConstraint(preferred_start=time(22, 0), preferred_end=time(6, 0))
        window = _window("00:00", "08:00")
        assert intersect_window(window, constraint) == _window("00:00", "06:00")

    def test_disjoint_range_is_empty(self):
        constraint = TaskTypeConstraint(preferred_start=time(6, 0), preferred_end=time(8, 0))
        assert intersect_window(_window("09:00", "18:00"), constraint) is None

    def test_preferred_end_only(self):
        constraint = TaskTypeConstraint(preferred_end=time(11, 0))
        assert intersect_window(_window("09:00", "18:00"), constraint) == _window("09:00", "11:00")


class TestContains:
    def test_inside(self):
        w = _window("09:00", "12:00")
        assert contains(w, datetime(2026, 2, 16, 9, 0), datetime(2026, 2, 16, 12, 0))

    def test_spills_over(self):
        w = _window("09:00", "12:00")
        assert not contains(w, datetime(2026, 2, 16, 11, 30), datetime(2026, 2, 16, 12, 30))

    def test_none_window(self):
        assert not contains(None, datetime(2026, 2, 16, 9), datetime(2026, 2, 16, 10))
