"""Grouping events by calendar date for the list and month views."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from .const import MAX_VISIBLE_EVENTS_PER_DAY
from .store_api.models import Event

WEEKDAY_NAMES: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(frozen=True)
class DaySection:
    """One date heading of the list view with its events."""

    date: str
    label: str
    is_past: bool
    events: tuple[Event, ...]


@dataclass(frozen=True)
class DayCell:
    """One day of the month grid.

    ``visible_events`` holds at most ``MAX_VISIBLE_EVENTS_PER_DAY`` events;
    the rest are summarized by ``more_label``. ``create_date`` is set only
    when the viewer may create events: clicking the cell opens the creation
    flow seeded with it. Event chips are their own click targets and never
    trigger the cell click.
    """

    date: date
    in_month: bool
    is_today: bool
    is_past: bool
    events: tuple[Event, ...]
    create_date: date | None = None

    @property
    def visible_events(self) -> tuple[Event, ...]:
        return self.events[:MAX_VISIBLE_EVENTS_PER_DAY]

    @property
    def hidden_count(self) -> int:
        return max(0, len(self.events) - MAX_VISIBLE_EVENTS_PER_DAY)

    @property
    def more_label(self) -> str | None:
        return f"+{self.hidden_count} more" if self.hidden_count else None


@dataclass(frozen=True)
class MonthGrid:
    """Sunday-first weeks covering a month plus padding days."""

    year: int
    month: int
    weeks: tuple[tuple[DayCell, ...], ...]

    @property
    def title(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    def cell(self, day: date) -> DayCell | None:
        for week in self.weeks:
            for cell in week:
                if cell.date == day:
                    return cell
        return None


def _event_order(event: Event) -> tuple[datetime, str, str]:
    return (event.start_time, event.title, event.id)


def group_by_date(events: Iterable[Event]) -> dict[str, list[Event]]:
    """Group events by their ``date``.

    Keys come out in ascending date order; each day's events are ordered by
    start time.
    """
    grouped: dict[str, list[Event]] = {}
    for event in sorted(events, key=_event_order):
        grouped.setdefault(event.date, []).append(event)
    return {day: grouped[day] for day in sorted(grouped)}


def build_day_sections(
    events: Iterable[Event], *, today: date | None = None
) -> list[DaySection]:
    """Build the list view: one section per date, dates ascending."""
    today = today or date.today()
    sections = []
    for day_iso, day_events in group_by_date(events).items():
        day = date.fromisoformat(day_iso)
        sections.append(
            DaySection(
                date=day_iso,
                label=format_day_label(day, today=today),
                is_past=day < today,
                events=tuple(day_events),
            )
        )
    return sections


def build_month_grid(
    year: int,
    month: int,
    events: Iterable[Event],
    *,
    today: date | None = None,
    can_create: bool = False,
) -> MonthGrid:
    """Lay out a month as Sunday-first weeks with each day's events attached."""
    today = today or date.today()
    grouped = group_by_date(events)
    weeks = []
    for week in calendar.Calendar(firstweekday=calendar.SUNDAY).monthdatescalendar(year, month):
        weeks.append(
            tuple(
                DayCell(
                    date=day,
                    in_month=day.month == month,
                    is_today=day == today,
                    is_past=day < today,
                    events=tuple(grouped.get(day.isoformat(), ())),
                    create_date=day if can_create else None,
                )
                for day in week
            )
        )
    return MonthGrid(year=year, month=month, weeks=tuple(weeks))


def month_bounds(year: int, month: int) -> tuple[str, str]:
    """First and last ISO date of a month, used to scope the month view query."""
    first = date(year, month, 1)
    last = first + relativedelta(day=31)
    return first.isoformat(), last.isoformat()


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move ``delta`` months forward (or back, if negative)."""
    moved = date(year, month, 1) + relativedelta(months=delta)
    return moved.year, moved.month


def format_day_label(day: date, *, today: date | None = None) -> str:
    """Heading for a list-view day.

    Today and tomorrow are named; other days read like "Monday, January 1",
    with the year appended when it is not the current one.
    """
    today = today or date.today()
    if day == today:
        return "Today"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    label = f"{calendar.day_name[day.weekday()]}, {calendar.month_name[day.month]} {day.day}"
    if day.year != today.year:
        label += f", {day.year}"
    return label


def format_time(moment: datetime) -> str:
    """Format as a 12-hour clock time, e.g. ``9:05 AM``."""
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d} {suffix}"


def format_event_span(event: Event) -> str:
    return f"{format_time(event.start_time)} - {format_time(event.end_time)}"
