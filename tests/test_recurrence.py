"""Tests for recurrence expansion."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from shared_schedule.exceptions import ValidationError
from shared_schedule.recurrence import expand_recurrence, weekday_index
from shared_schedule.store_api.models import RecurrencePattern


def _assert_strictly_increasing(dates: list[date]) -> None:
    assert all(a < b for a, b in zip(dates, dates[1:]))


class TestDaily:
    def test_single_day_range(self):
        start = date(2024, 3, 10)
        assert expand_recurrence(start, start, "daily") == [start]

    def test_every_day_inclusive(self):
        dates = expand_recurrence(date(2024, 2, 27), date(2024, 3, 2), RecurrencePattern.DAILY)
        assert dates == [
            date(2024, 2, 27),
            date(2024, 2, 28),
            date(2024, 2, 29),
            date(2024, 3, 1),
            date(2024, 3, 2),
        ]

    def test_end_before_start_is_empty(self):
        assert expand_recurrence(date(2024, 3, 10), date(2024, 3, 9), "daily") == []

    def test_accepts_iso_strings(self):
        assert expand_recurrence("2024-01-01", "2024-01-03", "daily") == [
            date(2024, 1, 1),
            date(2024, 1, 2),
            date(2024, 1, 3),
        ]


class TestWeekly:
    def test_same_weekday_every_seven_days(self):
        start = date(2024, 1, 3)  # Wednesday
        dates = expand_recurrence(start, date(2024, 1, 31), "weekly")
        assert dates == [start + timedelta(days=7 * i) for i in range(5)]
        assert {d.weekday() for d in dates} == {start.weekday()}

    def test_end_bound_is_inclusive(self):
        dates = expand_recurrence(date(2024, 1, 1), date(2024, 1, 15), "weekly")
        assert dates[-1] == date(2024, 1, 15)

    def test_range_shorter_than_a_week(self):
        assert expand_recurrence(date(2024, 1, 1), date(2024, 1, 6), "weekly") == [
            date(2024, 1, 1)
        ]


class TestWeekdays:
    def test_excludes_weekend(self):
        dates = expand_recurrence(date(2024, 1, 1), date(2024, 1, 7), "weekdays")
        assert dates == [date(2024, 1, d) for d in range(1, 6)]

    def test_weekend_only_range_is_empty(self):
        assert expand_recurrence(date(2024, 1, 6), date(2024, 1, 7), "weekdays") == []

    def test_long_range_only_monday_to_friday(self):
        dates = expand_recurrence(date(2024, 1, 1), date(2024, 6, 30), "weekdays")
        _assert_strictly_increasing(dates)
        assert all(d.weekday() < 5 for d in dates)


class TestCustom:
    def test_selected_weekdays_sunday_first(self):
        # 0 = Sunday, 3 = Wednesday
        dates = expand_recurrence(date(2024, 1, 1), date(2024, 1, 14), "custom", [0, 3])
        assert dates == [
            date(2024, 1, 3),
            date(2024, 1, 7),
            date(2024, 1, 10),
            date(2024, 1, 14),
        ]
        assert {weekday_index(d) for d in dates} == {0, 3}

    def test_duplicate_indices_do_not_duplicate_dates(self):
        dates = expand_recurrence(date(2024, 1, 1), date(2024, 1, 14), "custom", [6, 6, 6])
        assert dates == [date(2024, 1, 6), date(2024, 1, 13)]

    def test_empty_selection_is_an_error(self):
        with pytest.raises(ValidationError):
            expand_recurrence(date(2024, 1, 1), date(2024, 1, 31), "custom", [])

    @pytest.mark.parametrize("bad", [7, -1, "1", True])
    def test_invalid_index_rejected(self, bad):
        with pytest.raises(ValidationError):
            expand_recurrence(date(2024, 1, 1), date(2024, 1, 31), "custom", [bad])

    def test_selection_ignored_for_other_patterns(self):
        dates = expand_recurrence(date(2024, 1, 1), date(2024, 1, 2), "daily", [])
        assert len(dates) == 2


class TestLimitsAndErrors:
    def test_limit_stops_early(self):
        dates = expand_recurrence(date(2024, 1, 1), date(2030, 12, 31), "daily", limit=101)
        assert len(dates) == 101
        assert dates[-1] == date(2024, 1, 1) + timedelta(days=100)

    def test_unknown_pattern(self):
        with pytest.raises(ValidationError):
            expand_recurrence(date(2024, 1, 1), date(2024, 1, 2), "monthly")

    def test_bad_date_string(self):
        with pytest.raises(ValidationError):
            expand_recurrence("2024-13-01", "2024-01-02", "daily")

    @pytest.mark.parametrize("pattern", list(RecurrencePattern))
    def test_output_strictly_increasing(self, pattern):
        dates = expand_recurrence(
            date(2024, 1, 1), date(2024, 4, 30), pattern, [1, 5]
        )
        _assert_strictly_increasing(dates)
        assert len(dates) == len(set(dates))
        assert dates[0] >= date(2024, 1, 1)
        assert dates[-1] <= date(2024, 4, 30)


class TestWeekdayIndex:
    def test_sunday_is_zero(self):
        assert weekday_index(date(2024, 1, 7)) == 0

    def test_saturday_is_six(self):
        assert weekday_index(date(2024, 1, 6)) == 6
