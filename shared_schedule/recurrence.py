"""Expansion of recurrence rules into concrete occurrence dates."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable
from datetime import date, datetime, time

from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule, weekday

from .exceptions import ValidationError
from .store_api.models import RecurrencePattern

_LOGGER = logging.getLogger(__name__)

# Weekday indices used by callers: Sunday=0 .. Saturday=6.
_WEEKDAYS_BY_INDEX: tuple[weekday, ...] = (SU, MO, TU, WE, TH, FR, SA)
_MONDAY_TO_FRIDAY: tuple[weekday, ...] = (MO, TU, WE, TH, FR)


def weekday_index(day: date) -> int:
    """Return the Sunday-first weekday index (Sunday=0 .. Saturday=6)."""
    return (day.weekday() + 1) % 7


def expand_recurrence(
    start_date: date | str,
    end_date: date | str,
    pattern: RecurrencePattern | str,
    selected_weekdays: Iterable[int] = (),
    *,
    limit: int | None = None,
) -> list[date]:
    """Expand a recurrence rule into the dates it covers.

    Both bounds are inclusive. The result is strictly increasing. An end
    before the start yields an empty list.

    Args:
        start_date: First candidate date; ``weekly`` repeats on its weekday.
        end_date: Last candidate date.
        pattern: ``daily``, ``weekly``, ``weekdays`` or ``custom``.
        selected_weekdays: Sunday-first weekday indices, used by ``custom``.
        limit: Stop after this many dates. Lets callers detect an oversized
            range without materializing all of it.

    Raises:
        ValidationError: Unknown pattern, unparseable dates, or a ``custom``
            rule without any valid weekday.
    """
    start = _as_date(start_date, "start date")
    end = _as_date(end_date, "end date")
    try:
        pattern = RecurrencePattern(pattern)
    except ValueError as err:
        raise ValidationError(f"Unknown recurrence pattern: {pattern!r}") from err

    byweekday = _byweekday(pattern, selected_weekdays)
    if end < start:
        return []

    rule = rrule(
        WEEKLY if pattern is RecurrencePattern.WEEKLY else DAILY,
        dtstart=datetime.combine(start, time.min),
        until=datetime.combine(end, time.min),
        byweekday=byweekday,
    )
    occurrences: Iterable[date] = (dt.date() for dt in rule)
    if limit is not None:
        occurrences = itertools.islice(occurrences, limit)
    dates = list(occurrences)
    _LOGGER.debug(
        "Expanded %s rule %s..%s into %d date(s)", pattern.value, start, end, len(dates)
    )
    return dates


def _byweekday(
    pattern: RecurrencePattern, selected_weekdays: Iterable[int]
) -> tuple[weekday, ...] | None:
    if pattern is RecurrencePattern.WEEKDAYS:
        return _MONDAY_TO_FRIDAY
    if pattern is not RecurrencePattern.CUSTOM:
        return None

    indices = set()
    for value in selected_weekdays:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
            raise ValidationError(f"Invalid weekday index: {value!r} (expected 0-6, Sunday=0)")
        indices.add(value)
    if not indices:
        raise ValidationError("Please select at least one day for custom recurring events")
    return tuple(_WEEKDAYS_BY_INDEX[i] for i in sorted(indices))


def _as_date(value: date | str, label: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as err:
        raise ValidationError(f"Invalid {label}: {value!r}") from err
