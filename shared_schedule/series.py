"""Building event records (single or recurring series) from a create request."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any

import voluptuous as vol
from dateutil.relativedelta import relativedelta

from .const import BOOKING_WINDOW_YEARS, MAX_OCCURRENCES, events_collection
from .exceptions import ValidationError
from .identity import Identity
from .recurrence import expand_recurrence
from .store_api import BatchWrite, DocumentStore
from .store_api._serialization import decamelize
from .store_api.models import Event, RecurrencePattern

_LOGGER = logging.getLogger(__name__)


def _coerce_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as err:
        raise vol.Invalid(f"invalid date: {value!r}") from err


def _coerce_time(value: Any) -> time:
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError as err:
        raise vol.Invalid(f"invalid time: {value!r}") from err


RECURRENCE_SCHEMA = vol.Schema(
    {
        vol.Required("pattern"): vol.Coerce(RecurrencePattern),
        vol.Required("end_date"): _coerce_date,
        vol.Optional("selected_weekdays", default=list): [
            vol.All(vol.Coerce(int), vol.Range(min=0, max=6))
        ],
    }
)

EVENT_FORM_SCHEMA = vol.Schema(
    {
        vol.Required("title"): vol.All(str, vol.Strip, vol.Length(min=1)),
        vol.Optional("description", default=""): vol.Any(None, str),
        vol.Required("date"): _coerce_date,
        vol.Required("start_time"): _coerce_time,
        vol.Required("end_time"): _coerce_time,
        vol.Optional("recurrence", default=None): vol.Any(None, RECURRENCE_SCHEMA),
    },
    extra=vol.REMOVE_EXTRA,
)


@dataclass(frozen=True)
class RecurrenceRequest:
    """Repeat rule of a create request; ``date`` of the request is the start."""

    pattern: RecurrencePattern
    end_date: date
    selected_weekdays: tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EventRequest:
    """Everything the create-event form collects."""

    title: str
    date: date
    start_time: time
    end_time: time
    description: str = ""
    recurrence: RecurrenceRequest | None = None

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> EventRequest:
        """Validate raw form data into a request.

        Accepts snake_case or camelCase keys, either with a nested
        ``recurrence`` mapping or the flat ``isRecurring`` / ``recurringType``
        / ``recurringEnd`` / ``selectedDays`` fields.

        Raises:
            ValidationError: If a field is missing or malformed.
        """
        data = decamelize(dict(form))
        if "recurrence" not in data and data.get("is_recurring"):
            data["recurrence"] = {
                "pattern": data.get("recurring_type") or RecurrencePattern.DAILY.value,
                "end_date": data.get("recurring_end"),
                "selected_weekdays": data.get("selected_days") or [],
            }
        try:
            valid = EVENT_FORM_SCHEMA(data)
        except vol.Invalid as err:
            raise ValidationError(f"Invalid event details: {err}") from err

        recurrence = None
        if valid["recurrence"] is not None:
            rec = valid["recurrence"]
            recurrence = RecurrenceRequest(
                pattern=rec["pattern"],
                end_date=rec["end_date"],
                selected_weekdays=tuple(rec["selected_weekdays"]),
            )
        return cls(
            title=valid["title"],
            date=valid["date"],
            start_time=valid["start_time"],
            end_time=valid["end_time"],
            description=valid["description"] or "",
            recurrence=recurrence,
        )


def build_event_series(
    request: EventRequest,
    identity: Identity,
    *,
    now: datetime | None = None,
) -> list[Event]:
    """Turn a create request into the event records to store.

    A one-off request yields a single event. A recurring request yields one
    event per expanded date, all sharing a new ``recurring_group_id``.

    The event date must fall between today and one year from today; a
    recurrence must end on or after the event date and within the same year.

    Raises:
        ValidationError: End time not after start time, a date outside the
            booking window, custom rule without days, no dates in range, or
            more than ``MAX_OCCURRENCES`` dates.
    """
    if request.end_time <= request.start_time:
        raise ValidationError("End time must be after start time")

    now = now or datetime.now()
    _check_booking_window(request, now.date())
    common: dict[str, Any] = {
        "title": request.title,
        "description": request.description or None,
        "created_by": identity.id,
        "created_by_name": identity.name,
        "created_at": now,
        "updated_at": now,
    }

    rec = request.recurrence
    if rec is None:
        return [_occurrence(request, request.date, common, is_recurring=False)]

    if rec.pattern is RecurrencePattern.CUSTOM and not rec.selected_weekdays:
        raise ValidationError("Please select at least one day for custom recurring events")

    dates = expand_recurrence(
        request.date,
        rec.end_date,
        rec.pattern,
        rec.selected_weekdays,
        limit=MAX_OCCURRENCES + 1,
    )
    if not dates:
        raise ValidationError("No events to create with selected criteria")
    if len(dates) > MAX_OCCURRENCES:
        raise ValidationError(
            f"Too many recurring events (max {MAX_OCCURRENCES}). "
            "Please reduce the date range."
        )

    group_id = new_recurring_group_id()
    return [
        _occurrence(
            request,
            day,
            common,
            is_recurring=True,
            recurring_group_id=group_id,
            recurring_type=rec.pattern,
        )
        for day in dates
    ]


async def async_persist_series(
    store: DocumentStore, schedule_id: str, events: Sequence[Event]
) -> None:
    """Store built events; a series goes through one atomic batch."""
    if not events:
        raise ValidationError("No events to create with selected criteria")
    collection = events_collection(schedule_id)
    if len(events) == 1 and not events[0].is_recurring:
        event = events[0]
        await store.async_set_document(collection, event.id, event.to_document())
        return
    await store.async_atomic_batch(
        [BatchWrite.set(collection, event.id, event.to_document()) for event in events]
    )
    _LOGGER.debug("Stored %d occurrence(s) in %s", len(events), collection)


def new_recurring_group_id() -> str:
    return f"recurring_{uuid.uuid4().hex}"


def _check_booking_window(request: EventRequest, today: date) -> None:
    latest = today + relativedelta(years=BOOKING_WINDOW_YEARS)
    if request.date < today:
        raise ValidationError("Event date cannot be in the past")
    if request.date > latest:
        raise ValidationError("Event date must be within one year from today")
    rec = request.recurrence
    if rec is not None and not request.date <= rec.end_date <= latest:
        raise ValidationError(
            "Recurring end date must be between the event date and one year from today"
        )


def _occurrence(
    request: EventRequest,
    day: date,
    common: dict[str, Any],
    **series: Any,
) -> Event:
    return Event(
        id=uuid.uuid4().hex,
        date=day.isoformat(),
        start_time=datetime.combine(day, request.start_time),
        end_time=datetime.combine(day, request.end_time),
        **common,
        **series,
    )
