"""Live member and event state for one open schedule."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from .access import RoleResolution, resolve_role
from .aggregation import (
    DaySection,
    MonthGrid,
    build_day_sections,
    build_month_grid,
    group_by_date,
    month_bounds,
    shift_month,
)
from .const import NotificationKind, events_collection, members_collection
from .identity import Notifier
from .store_api import DocumentStore, Filter, OrderBy, Subscription
from .store_api.models import Event, Member, Schedule

_LOGGER = logging.getLogger(__name__)

UpdateListener = Callable[[], None]


class ScheduleCoordinator:
    """Keeps one schedule's members and events in sync with the store.

    Holds at most one subscription per collection. ``start()`` acquires them
    and ``stop()`` releases them; the coordinator is also an async context
    manager so a view can scope both to its lifetime::

        async with ScheduleCoordinator(store, schedule) as coordinator:
            coordinator.set_month(2024, 1)
            grid = coordinator.month_grid(can_create=True)

    Without a month, the event subscription covers the whole schedule ordered
    by start time (the list view). With a month, it is narrowed to that
    month's dates (the calendar view).
    """

    def __init__(
        self,
        store: DocumentStore,
        schedule: Schedule,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self._store = store
        self._schedule = schedule
        self._notifier = notifier
        self._month: tuple[int, int] | None = None
        self._members: dict[str, Member] = {}
        self._events: dict[str, Event] = {}
        self._member_sub: Subscription | None = None
        self._event_sub: Subscription | None = None
        self._listeners: list[UpdateListener] = []

    async def __aenter__(self) -> ScheduleCoordinator:
        self.start()
        return self

    async def __aexit__(self, *_: Any) -> None:
        self.stop()

    @property
    def schedule(self) -> Schedule:
        return self._schedule

    @property
    def month(self) -> tuple[int, int] | None:
        return self._month

    @property
    def running(self) -> bool:
        return self._member_sub is not None

    @property
    def members(self) -> dict[str, Member]:
        return dict(self._members)

    @property
    def events(self) -> list[Event]:
        return sorted(self._events.values(), key=lambda e: (e.start_time, e.id))

    # ------------------------------------------------------------------ #
    #  Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Subscribe to members and events. Calling it twice is a no-op."""
        if self.running:
            return
        _LOGGER.debug("Starting live view of schedule %s", self._schedule.id)
        self._member_sub = self._store.subscribe(
            members_collection(self._schedule.id),
            self._handle_members,
            on_error=self._handle_error,
        )
        self._subscribe_events()

    def stop(self) -> None:
        """Release every subscription; no callbacks fire afterwards."""
        for sub in (self._member_sub, self._event_sub):
            if sub is not None:
                sub.cancel()
        self._member_sub = None
        self._event_sub = None
        _LOGGER.debug("Stopped live view of schedule %s", self._schedule.id)

    def set_month(self, year: int, month: int) -> None:
        """Narrow the event subscription to one month (replacing the old one)."""
        if self._month == (year, month):
            return
        self._month = (year, month)
        if self.running:
            self._subscribe_events()

    def shift_month(self, delta: int) -> None:
        """Move the viewed month forward or back; starts from this month if unset."""
        today = date.today()
        year, month = self._month or (today.year, today.month)
        self.set_month(*shift_month(year, month, delta))

    def add_listener(self, listener: UpdateListener) -> Callable[[], None]:
        """Register a change callback; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------ #
    #  Derived views
    # ------------------------------------------------------------------ #

    def role_for(self, identity_id: str) -> RoleResolution:
        return resolve_role(self._schedule, self._members, identity_id)

    def grouped_events(self) -> dict[str, list[Event]]:
        return group_by_date(self._events.values())

    def day_sections(self, *, today: date | None = None) -> list[DaySection]:
        return build_day_sections(self._events.values(), today=today)

    def month_grid(
        self, *, today: date | None = None, can_create: bool = False
    ) -> MonthGrid:
        today = today or date.today()
        year, month = self._month or (today.year, today.month)
        return build_month_grid(
            year, month, self._events.values(), today=today, can_create=can_create
        )

    # ------------------------------------------------------------------ #
    #  Internals
    # ------------------------------------------------------------------ #

    def _subscribe_events(self) -> None:
        if self._event_sub is not None:
            self._event_sub.cancel()
        self._events = {}
        filters: list[Filter] = []
        if self._month is not None:
            first, last = month_bounds(*self._month)
            filters = [Filter("date", ">=", first), Filter("date", "<=", last)]
        self._event_sub = self._store.subscribe(
            events_collection(self._schedule.id),
            self._handle_events,
            filters=filters,
            order_by=[OrderBy("start_time")],
            on_error=self._handle_error,
        )

    def _handle_members(self, docs: list[dict[str, Any]]) -> None:
        members: dict[str, Member] = {}
        for doc in docs:
            try:
                member = Member.from_document(doc)
            except (KeyError, ValueError):
                _LOGGER.warning("Skipping malformed member %s", doc.get("id"), exc_info=True)
                continue
            members[member.id] = member
        self._members = members
        self._fire()

    def _handle_events(self, docs: list[dict[str, Any]]) -> None:
        events: dict[str, Event] = {}
        for doc in docs:
            try:
                event = Event.from_document(doc)
            except (KeyError, ValueError, TypeError):
                _LOGGER.warning("Skipping malformed event %s", doc.get("id"), exc_info=True)
                continue
            events[event.id] = event
        self._events = events
        self._fire()

    def _handle_error(self, err: Exception) -> None:
        _LOGGER.warning("Live update for schedule %s failed: %s", self._schedule.id, err)
        if self._notifier is not None:
            self._notifier.notify(NotificationKind.ERROR, "Failed to load events")

    def _fire(self) -> None:
        for listener in list(self._listeners):
            listener()
