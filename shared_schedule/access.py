"""Role resolution and permission checks for schedule members."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date

from .const import RoleSource
from .exceptions import AuthorizationError
from .store_api.models import Event, Member, Role, Schedule


class Permission(str, enum.Enum):
    """Operations gated by role."""

    VIEW = "view"
    CREATE_EVENTS = "create_events"
    DELETE_OWN_EVENTS = "delete_own_events"
    MANAGE_MEMBERS = "manage_members"


_ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.EDITOR: frozenset(
        {Permission.VIEW, Permission.CREATE_EVENTS, Permission.DELETE_OWN_EVENTS}
    ),
    Role.VIEWER: frozenset({Permission.VIEW}),
}


@dataclass(frozen=True)
class RoleResolution:
    """Outcome of resolving an identity's role on a schedule."""

    source: RoleSource
    role: Role | None = None

    @property
    def has_access(self) -> bool:
        return self.source is not RoleSource.NONE


def resolve_role(
    schedule: Schedule,
    members: Iterable[Member] | Mapping[str, Member],
    identity_id: str,
) -> RoleResolution:
    """Resolve the role of ``identity_id``.

    The owner is always an admin, whatever the member records say. Anyone
    else needs a member record.
    """
    if schedule.owner_id == identity_id:
        return RoleResolution(RoleSource.OWNER, Role.ADMIN)
    if isinstance(members, Mapping):
        member = members.get(identity_id)
    else:
        member = next((m for m in members if m.id == identity_id), None)
    if member is not None:
        return RoleResolution(RoleSource.MEMBER, member.role)
    return RoleResolution(RoleSource.NONE)


def role_of(
    schedule: Schedule,
    members: Iterable[Member] | Mapping[str, Member],
    identity_id: str,
) -> Role:
    """Return the effective role, refusing identities without access.

    Raises:
        AuthorizationError: If the identity neither owns nor belongs to the schedule.
    """
    resolution = resolve_role(schedule, members, identity_id)
    if resolution.role is None:
        raise AuthorizationError("You do not have access to this schedule")
    return resolution.role


def permissions_for(role: Role | None) -> frozenset[Permission]:
    if role is None:
        return frozenset()
    return _ROLE_PERMISSIONS[Role(role)]


def can_manage_members(role: Role | None) -> bool:
    return role == Role.ADMIN


def can_create_events(role: Role | None) -> bool:
    return role in (Role.ADMIN, Role.EDITOR)


def can_delete_event(
    role: Role | None,
    event: Event,
    identity_id: str,
    *,
    today: date | None = None,
) -> bool:
    """Whether ``identity_id`` may delete ``event``.

    Only the event's creator, holding a role that can create events, and only
    while the event's date is today or later.
    """
    today = today or date.today()
    return (
        can_create_events(role)
        and event.created_by == identity_id
        and event.day >= today
    )


def ensure_can_manage_members(role: Role | None) -> None:
    if not can_manage_members(role):
        raise AuthorizationError("Only admins can manage members")


def ensure_can_create_events(role: Role | None) -> None:
    if not can_create_events(role):
        raise AuthorizationError("You do not have permission to create events")


def ensure_can_delete_event(
    role: Role | None,
    event: Event,
    identity_id: str,
    *,
    today: date | None = None,
) -> None:
    if not can_delete_event(role, event, identity_id, today=today):
        raise AuthorizationError("You can only delete your own upcoming events")


def ensure_can_remove_member(role: Role | None, member_id: str, acting_id: str) -> None:
    """Refuse self-removal (for any role) and removal by non-admins."""
    if member_id == acting_id:
        raise AuthorizationError("You can't remove yourself")
    ensure_can_manage_members(role)
