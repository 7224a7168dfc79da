"""Tests for building and storing event series."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, time

import pytest

from conftest import OWNER, VIEWER
from shared_schedule.const import events_collection
from shared_schedule.exceptions import ValidationError
from shared_schedule.series import (
    EventRequest,
    RecurrenceRequest,
    async_persist_series,
    build_event_series,
)
from shared_schedule.store_api import BatchCommitError, MemoryDocumentStore
from shared_schedule.store_api.models import Event, RecurrencePattern

NOW = datetime(2024, 1, 1, 8, 0)


def _request(
    *,
    day: date = date(2024, 1, 1),
    start: time = time(9, 0),
    end: time = time(10, 30),
    recurrence: RecurrenceRequest | None = None,
) -> EventRequest:
    return EventRequest(
        title="Morning Shift",
        description="Front desk",
        date=day,
        start_time=start,
        end_time=end,
        recurrence=recurrence,
    )


class FailingBatchStore(MemoryDocumentStore):
    async def async_atomic_batch(self, writes):
        raise BatchCommitError("rejected")


# =========================================================================== #
#  build_event_series
# =========================================================================== #


class TestSingleEvent:
    def test_one_record(self):
        events = build_event_series(_request(), OWNER, now=NOW)
        assert len(events) == 1
        event = events[0]
        assert event.date == "2024-01-01"
        assert event.start_time == datetime(2024, 1, 1, 9, 0)
        assert event.end_time == datetime(2024, 1, 1, 10, 30)
        assert event.is_recurring is False
        assert event.recurring_group_id is None
        assert event.recurring_type is None
        assert event.created_by == "u1"
        assert event.created_by_name == "Olivia Owner"
        assert event.created_at == NOW

    def test_creator_name_falls_back_to_email(self):
        event = build_event_series(_request(), VIEWER, now=NOW)[0]
        assert event.created_by_name == "viewer@example.com"

    def test_document_has_no_series_fields(self):
        doc = build_event_series(_request(), OWNER, now=NOW)[0].to_document()
        assert "recurring_group_id" not in doc
        assert doc["is_recurring"] is False

    @pytest.mark.parametrize("end", [time(9, 0), time(8, 59)])
    def test_end_must_follow_start(self, end):
        with pytest.raises(ValidationError, match="End time must be after start time"):
            build_event_series(_request(end=end), OWNER, now=NOW)


class TestRecurringSeries:
    def test_weekdays_example(self):
        rec = RecurrenceRequest(RecurrencePattern.WEEKDAYS, date(2024, 1, 7))
        events = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        assert [e.date for e in events] == [f"2024-01-0{d}" for d in range(1, 6)]

    def test_shared_group_and_type(self):
        rec = RecurrenceRequest(RecurrencePattern.DAILY, date(2024, 1, 10))
        events = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        assert len(events) == 10
        assert len({e.recurring_group_id for e in events}) == 1
        assert events[0].recurring_group_id.startswith("recurring_")
        assert {e.recurring_type for e in events} == {RecurrencePattern.DAILY}
        assert all(e.is_recurring for e in events)
        assert len({e.id for e in events}) == 10

    def test_each_occurrence_keeps_time_of_day(self):
        rec = RecurrenceRequest(RecurrencePattern.WEEKLY, date(2024, 1, 31))
        events = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        for event in events:
            assert event.start_time.date() == event.day
            assert event.start_time.time() == time(9, 0)
            assert event.end_time.time() == time(10, 30)
            assert event.end_time > event.start_time

    def test_new_group_per_request(self):
        rec = RecurrenceRequest(RecurrencePattern.DAILY, date(2024, 1, 2))
        first = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        second = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        assert first[0].recurring_group_id != second[0].recurring_group_id

    def test_custom_requires_days(self):
        rec = RecurrenceRequest(RecurrencePattern.CUSTOM, date(2024, 1, 31))
        with pytest.raises(ValidationError, match="at least one day"):
            build_event_series(_request(recurrence=rec), OWNER, now=NOW)

    def test_no_matching_dates(self):
        rec = RecurrenceRequest(RecurrencePattern.WEEKDAYS, date(2024, 1, 7))
        with pytest.raises(ValidationError, match="No events to create"):
            build_event_series(_request(day=date(2024, 1, 6), recurrence=rec), OWNER, now=NOW)

    def test_end_before_start_date(self):
        rec = RecurrenceRequest(RecurrencePattern.DAILY, date(2023, 12, 31))
        with pytest.raises(ValidationError):
            build_event_series(_request(recurrence=rec), OWNER, now=NOW)

    def test_exactly_one_hundred_allowed(self):
        # 2024-01-01 + 99 days = 2024-04-09
        rec = RecurrenceRequest(RecurrencePattern.DAILY, date(2024, 4, 9))
        events = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        assert len(events) == 100

    def test_one_hundred_and_one_rejected(self):
        rec = RecurrenceRequest(RecurrencePattern.DAILY, date(2024, 4, 10))
        with pytest.raises(ValidationError, match="max 100"):
            build_event_series(_request(recurrence=rec), OWNER, now=NOW)

    def test_sparse_custom_over_long_range_counts_matches(self):
        # Mondays and Tuesdays for 50 weeks: exactly 100 matches.
        rec = RecurrenceRequest(RecurrencePattern.CUSTOM, date(2024, 12, 10), (1, 2))
        events = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        assert len(events) == 100
        assert {e.day.weekday() for e in events} == {0, 1}


class TestBookingWindow:
    def test_today_allowed(self):
        assert len(build_event_series(_request(day=NOW.date()), OWNER, now=NOW)) == 1

    def test_past_date_rejected(self):
        with pytest.raises(ValidationError, match="cannot be in the past"):
            build_event_series(_request(day=date(2023, 6, 1)), OWNER, now=NOW)

    def test_one_year_ahead_allowed(self):
        events = build_event_series(_request(day=date(2025, 1, 1)), OWNER, now=NOW)
        assert events[0].date == "2025-01-01"

    def test_beyond_one_year_rejected(self):
        with pytest.raises(ValidationError, match="within one year"):
            build_event_series(_request(day=date(2025, 1, 2)), OWNER, now=NOW)

    @pytest.mark.parametrize("end", [date(2023, 12, 31), date(2025, 1, 2)])
    def test_recurrence_end_outside_window(self, end):
        rec = RecurrenceRequest(RecurrencePattern.WEEKLY, end)
        with pytest.raises(ValidationError, match="Recurring end date"):
            build_event_series(_request(recurrence=rec), OWNER, now=NOW)

    def test_recurrence_end_on_last_day(self):
        rec = RecurrenceRequest(RecurrencePattern.WEEKLY, date(2025, 1, 1))
        events = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        assert events[-1].date == "2024-12-30"


# =========================================================================== #
#  EventRequest.from_form
# =========================================================================== #


class TestFromForm:
    def test_one_off_camel_case(self):
        req = EventRequest.from_form(
            {"title": "  Standup ", "date": "2024-01-02", "startTime": "09:00", "endTime": "09:15"}
        )
        assert req.title == "Standup"
        assert req.date == date(2024, 1, 2)
        assert req.start_time == time(9, 0)
        assert req.recurrence is None
        assert req.description == ""

    def test_flat_recurring_fields(self):
        req = EventRequest.from_form(
            {
                "title": "Gym",
                "date": "2024-01-01",
                "startTime": "18:00",
                "endTime": "19:00",
                "isRecurring": True,
                "recurringType": "custom",
                "recurringEnd": "2024-02-01",
                "selectedDays": [1, 3],
            }
        )
        assert req.recurrence == RecurrenceRequest(
            RecurrencePattern.CUSTOM, date(2024, 2, 1), (1, 3)
        )

    def test_nested_recurrence(self):
        req = EventRequest.from_form(
            {
                "title": "Gym",
                "date": date(2024, 1, 1),
                "start_time": time(18, 0),
                "end_time": "19:00",
                "recurrence": {"pattern": "weekly", "end_date": "2024-03-01"},
            }
        )
        assert req.recurrence.pattern is RecurrencePattern.WEEKLY
        assert req.recurrence.selected_weekdays == ()

    @pytest.mark.parametrize(
        "form",
        [
            {"date": "2024-01-01", "startTime": "09:00", "endTime": "10:00"},
            {"title": "", "date": "2024-01-01", "startTime": "09:00", "endTime": "10:00"},
            {"title": "X", "date": "tomorrow", "startTime": "09:00", "endTime": "10:00"},
            {"title": "X", "date": "2024-01-01", "startTime": "9am", "endTime": "10:00"},
            {
                "title": "X",
                "date": "2024-01-01",
                "startTime": "09:00",
                "endTime": "10:00",
                "recurrence": {"pattern": "yearly", "end_date": "2024-02-01"},
            },
            {
                "title": "X",
                "date": "2024-01-01",
                "startTime": "09:00",
                "endTime": "10:00",
                "isRecurring": True,
                "recurringType": "daily",
            },
        ],
    )
    def test_invalid_forms(self, form):
        with pytest.raises(ValidationError):
            EventRequest.from_form(form)


# =========================================================================== #
#  async_persist_series
# =========================================================================== #


class TestPersist:
    def test_single_event_stored(self):
        store = MemoryDocumentStore()
        events = build_event_series(_request(), OWNER, now=NOW)
        asyncio.run(async_persist_series(store, "s1", events))
        docs = asyncio.run(store.async_query_collection(events_collection("s1")))
        assert len(docs) == 1
        assert Event.from_document(docs[0]) == events[0]

    def test_series_stored_together(self):
        store = MemoryDocumentStore()
        rec = RecurrenceRequest(RecurrencePattern.DAILY, date(2024, 1, 5))
        events = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        asyncio.run(async_persist_series(store, "s1", events))
        docs = asyncio.run(store.async_query_collection(events_collection("s1")))
        assert sorted(Event.from_document(d).date for d in docs) == [e.date for e in events]

    def test_failed_batch_writes_nothing(self):
        store = FailingBatchStore()
        rec = RecurrenceRequest(RecurrencePattern.DAILY, date(2024, 1, 5))
        events = build_event_series(_request(recurrence=rec), OWNER, now=NOW)
        with pytest.raises(BatchCommitError):
            asyncio.run(async_persist_series(store, "s1", events))
        assert asyncio.run(store.async_query_collection(events_collection("s1"))) == []
