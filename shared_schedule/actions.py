"""User-initiated schedule operations with notification of the outcome."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from .access import (
    ensure_can_create_events,
    ensure_can_delete_event,
    ensure_can_manage_members,
    ensure_can_remove_member,
    role_of,
)
from .const import (
    SCHEDULES_COLLECTION,
    USERS_COLLECTION,
    DeletionChoice,
    NotificationKind,
    events_collection,
    members_collection,
)
from .deletion import DeletionScope, async_apply_deletion, resolve_series_deletion
from .exceptions import AuthorizationError, NotFoundError, ScheduleError, ValidationError
from .identity import Identity, Notifier
from .series import EventRequest, async_persist_series, build_event_series
from .store_api import BatchWrite, DocumentStore, Filter, OrderBy, StoreError
from .store_api.models import Event, Member, Role, Schedule, UserProfile

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ActionResult(Generic[T]):
    """Outcome of an action. The notifier has already been told about it."""

    ok: bool
    value: T | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class ScheduleAccess:
    """An opened schedule as seen by one identity."""

    schedule: Schedule
    role: Role
    members: dict[str, Member] = field(default_factory=dict)


class ScheduleActions:
    """Entry points for everything a user can do to a schedule.

    Each action checks the caller's role, runs the pure core, writes through
    the store, and reports success or failure to the notifier. Domain errors
    are shown with their own message; store failures are logged and shown as
    a generic failure. Only one submission per action and schedule runs at a
    time; a second one while the first is pending is refused.
    """

    def __init__(
        self,
        store: DocumentStore,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._locks: dict[tuple[str, str | None], asyncio.Lock] = {}

    # ------------------------------------------------------------------ #
    #  Schedules
    # ------------------------------------------------------------------ #

    async def async_create_schedule(
        self, identity: Identity | None, title: str, description: str = ""
    ) -> ActionResult[Schedule]:
        """Create a schedule owned by ``identity`` and add them as admin."""

        async def run() -> tuple[Schedule, str]:
            actor = _require_identity(identity)
            if not title or not title.strip():
                raise ValidationError("Schedule title is required")
            now = self._clock()
            schedule = Schedule(
                id=uuid.uuid4().hex,
                title=title.strip(),
                description=description.strip() or None,
                owner_id=actor.id,
                owner_name=actor.name,
                created_at=now,
                updated_at=now,
            )
            owner = Member(
                id=actor.id,
                email=actor.email,
                display_name=actor.name,
                role=Role.ADMIN,
                added_at=now,
                added_by=actor.id,
            )
            await self._store.async_atomic_batch(
                [
                    BatchWrite.set(SCHEDULES_COLLECTION, schedule.id, schedule.to_document()),
                    BatchWrite.set(members_collection(schedule.id), owner.id, owner.to_document()),
                ]
            )
            return schedule, "Schedule created successfully!"

        return await self._run(
            "create_schedule", "Failed to create schedule", run, _identity_key(identity)
        )

    async def async_list_owned_schedules(self, identity: Identity | None) -> ActionResult[list[Schedule]]:
        """Schedules owned by ``identity``, newest first."""

        async def run() -> tuple[list[Schedule], None]:
            actor = _require_identity(identity)
            docs = await self._store.async_query_collection(
                SCHEDULES_COLLECTION,
                [Filter("owner_id", "==", actor.id)],
                [OrderBy("created_at", descending=True)],
            )
            schedules = []
            for doc in docs:
                try:
                    schedules.append(Schedule.from_document(doc))
                except (KeyError, ValueError, TypeError):
                    _LOGGER.warning("Skipping malformed schedule %s", doc.get("id"), exc_info=True)
            return schedules, None

        return await self._run(
            "list_schedules", "Failed to load schedules", run, _identity_key(identity)
        )

    async def async_open_schedule(
        self, identity: Identity | None, schedule_id: str
    ) -> ActionResult[ScheduleAccess]:
        """Load a schedule and the caller's role on it."""

        async def run() -> tuple[ScheduleAccess, None]:
            return await self._load_access(identity, schedule_id), None

        return await self._run("open_schedule", "Failed to load schedule", run, schedule_id)

    # ------------------------------------------------------------------ #
    #  Members
    # ------------------------------------------------------------------ #

    async def async_add_member(
        self,
        identity: Identity | None,
        schedule_id: str,
        email: str,
        role: Role | str = Role.VIEWER,
    ) -> ActionResult[Member]:
        """Add a registered user, looked up by e-mail, with ``role``."""

        async def run() -> tuple[Member, str]:
            access = await self._load_access(identity, schedule_id)
            ensure_can_manage_members(access.role)
            try:
                member_role = Role(role)
            except ValueError as err:
                raise ValidationError(f"Unknown role: {role!r}") from err

            docs = await self._store.async_query_collection(
                USERS_COLLECTION, [Filter("email", "==", email.lower().strip())]
            )
            if not docs:
                raise NotFoundError("No user found with this email address")
            user = UserProfile.from_document(docs[0])

            if user.id in access.members:
                raise ValidationError("This user is already a member of this schedule")

            member = Member(
                id=user.id,
                email=user.email,
                display_name=user.name,
                role=member_role,
                added_at=self._clock(),
                added_by=_require_identity(identity).id,
            )
            await self._store.async_set_document(
                members_collection(schedule_id), member.id, member.to_document()
            )
            return member, f"{member.display_name} added successfully!"

        return await self._run("add_member", "Failed to add member", run, schedule_id)

    async def async_remove_member(
        self, identity: Identity | None, schedule_id: str, member_id: str
    ) -> ActionResult[str]:
        """Remove a member. Admins only, and never the caller themself."""

        async def run() -> tuple[str, str]:
            actor = _require_identity(identity)
            access = await self._load_access(actor, schedule_id)
            ensure_can_remove_member(access.role, member_id, actor.id)
            if member_id not in access.members:
                raise NotFoundError("Member not found")
            await self._store.async_delete_document(members_collection(schedule_id), member_id)
            return member_id, "Member removed successfully"

        return await self._run("remove_member", "Failed to remove member", run, schedule_id)

    # ------------------------------------------------------------------ #
    #  Events
    # ------------------------------------------------------------------ #

    async def async_create_event(
        self,
        identity: Identity | None,
        schedule_id: str,
        request: EventRequest | Mapping[str, Any],
    ) -> ActionResult[list[Event]]:
        """Create a one-off event or a whole recurring series.

        Everything is validated before the first write; a series is written
        in one atomic batch.
        """

        async def run() -> tuple[list[Event], str]:
            actor = _require_identity(identity)
            event_request = (
                request if isinstance(request, EventRequest) else EventRequest.from_form(request)
            )
            access = await self._load_access(actor, schedule_id)
            ensure_can_create_events(access.role)
            events = build_event_series(event_request, actor, now=self._clock())
            await async_persist_series(self._store, schedule_id, events)
            if event_request.recurrence is None:
                return events, "Event created successfully!"
            return events, f"Created {len(events)} recurring events!"

        return await self._run("create_event", "Failed to create event", run, schedule_id)

    async def async_delete_event(
        self,
        identity: Identity | None,
        schedule_id: str,
        event: Event | str,
        choice: DeletionChoice | str | None = None,
    ) -> ActionResult[int]:
        """Delete one event, or its whole series when ``choice`` says so.

        The result value is the number of records deleted.
        """

        async def run() -> tuple[int, str]:
            actor = _require_identity(identity)
            target = await self._load_event(schedule_id, event)
            access = await self._load_access(actor, schedule_id)
            ensure_can_delete_event(access.role, target, actor.id, today=self._clock().date())
            plan = resolve_series_deletion(target, choice)
            count = await async_apply_deletion(self._store, schedule_id, plan)
            if plan.scope is DeletionScope.SERIES:
                return count, f"Deleted {count} recurring events"
            return count, "Event deleted successfully"

        return await self._run("delete_event", "Failed to delete event", run, schedule_id)

    # ------------------------------------------------------------------ #
    #  Internals
    # ------------------------------------------------------------------ #

    async def _load_access(self, identity: Identity | None, schedule_id: str) -> ScheduleAccess:
        actor = _require_identity(identity)
        doc = await self._store.async_get_document(SCHEDULES_COLLECTION, schedule_id)
        if doc is None:
            raise NotFoundError("Schedule not found")
        try:
            schedule = Schedule.from_document(doc)
        except (KeyError, ValueError, TypeError) as err:
            _LOGGER.warning("Malformed schedule %s", schedule_id, exc_info=True)
            raise NotFoundError("Schedule not found") from err

        members: dict[str, Member] = {}
        for member_doc in await self._store.async_query_collection(members_collection(schedule_id)):
            try:
                member = Member.from_document(member_doc)
            except (KeyError, ValueError):
                _LOGGER.warning("Skipping malformed member %s", member_doc.get("id"), exc_info=True)
                continue
            members[member.id] = member
        return ScheduleAccess(schedule, role_of(schedule, members, actor.id), members)

    async def _load_event(self, schedule_id: str, event: Event | str) -> Event:
        # Always the stored record; a caller-supplied Event only names its id.
        event_id = event.id if isinstance(event, Event) else event
        doc = await self._store.async_get_document(events_collection(schedule_id), event_id)
        if doc is None:
            raise NotFoundError("Event not found")
        try:
            return Event.from_document(doc)
        except (KeyError, ValueError, TypeError) as err:
            _LOGGER.warning("Malformed event %s", event_id, exc_info=True)
            raise NotFoundError("Event not found") from err

    async def _run(
        self,
        action: str,
        failure_message: str,
        operation: Callable[[], Awaitable[tuple[T, str | None]]],
        key: str | None = None,
    ) -> ActionResult[T]:
        lock = self._locks.setdefault((action, key), asyncio.Lock())
        if lock.locked():
            return self._fail(ValidationError("Please wait for the previous request to finish"))

        async with lock:
            try:
                value, message = await operation()
            except ScheduleError as err:
                _LOGGER.debug("%s refused: %s", action, err)
                return self._fail(err)
            except StoreError as err:
                _LOGGER.exception("%s failed", action)
                return self._fail(err, failure_message)

        if message:
            self._notifier.notify(NotificationKind.SUCCESS, message)
        return ActionResult(True, value)

    def _fail(self, err: Exception, message: str | None = None) -> ActionResult[Any]:
        self._notifier.notify(NotificationKind.ERROR, message or str(err))
        return ActionResult(False, error=err)


def _identity_key(identity: Identity | None) -> str | None:
    return identity.id if identity is not None else None


def _require_identity(identity: Identity | None) -> Identity:
    if identity is None:
        raise AuthorizationError("You must be signed in")
    return identity
