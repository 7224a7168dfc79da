"""Tests for role resolution and permission checks."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from shared_schedule.access import (
    Permission,
    can_create_events,
    can_delete_event,
    can_manage_members,
    ensure_can_create_events,
    ensure_can_delete_event,
    ensure_can_manage_members,
    ensure_can_remove_member,
    permissions_for,
    resolve_role,
    role_of,
)
from shared_schedule.const import RoleSource
from shared_schedule.exceptions import AuthorizationError
from shared_schedule.store_api.models import Event, Member, Role, Schedule

TODAY = date(2024, 6, 15)

SCHEDULE = Schedule(id="s1", title="Team", owner_id="u1", owner_name="Olivia")


def _member(uid: str, role: Role) -> Member:
    return Member(id=uid, email=f"{uid}@example.com", display_name=uid, role=role)


def _event(day: str = "2024-06-15", created_by: str = "u2") -> Event:
    d = date.fromisoformat(day)
    return Event(
        id="e1",
        title="Shift",
        date=day,
        start_time=datetime(d.year, d.month, d.day, 9),
        end_time=datetime(d.year, d.month, d.day, 10),
        created_by=created_by,
        created_by_name=created_by,
    )


class TestResolveRole:
    def test_owner_is_admin_without_member_record(self):
        result = resolve_role(SCHEDULE, [], "u1")
        assert result.source is RoleSource.OWNER
        assert result.role is Role.ADMIN
        assert result.has_access

    def test_owner_wins_over_member_record(self):
        members = [_member("u1", Role.VIEWER)]
        result = resolve_role(SCHEDULE, members, "u1")
        assert result.source is RoleSource.OWNER
        assert result.role is Role.ADMIN

    @pytest.mark.parametrize("role", list(Role))
    def test_member_role(self, role):
        result = resolve_role(SCHEDULE, [_member("u2", role)], "u2")
        assert result.source is RoleSource.MEMBER
        assert result.role is role

    def test_mapping_of_members(self):
        members = {"u2": _member("u2", Role.EDITOR)}
        assert resolve_role(SCHEDULE, members, "u2").role is Role.EDITOR

    def test_stranger_has_no_access(self):
        result = resolve_role(SCHEDULE, [_member("u2", Role.EDITOR)], "u9")
        assert result.source is RoleSource.NONE
        assert result.role is None
        assert not result.has_access

    def test_role_of_refuses_stranger(self):
        with pytest.raises(AuthorizationError, match="do not have access"):
            role_of(SCHEDULE, [], "u9")

    def test_role_of_member(self):
        assert role_of(SCHEDULE, [_member("u3", Role.VIEWER)], "u3") is Role.VIEWER


class TestPermissions:
    def test_admin_has_everything(self):
        assert permissions_for(Role.ADMIN) == frozenset(Permission)

    def test_viewer_only_views(self):
        assert permissions_for(Role.VIEWER) == {Permission.VIEW}

    def test_no_role_no_permissions(self):
        assert permissions_for(None) == frozenset()

    @pytest.mark.parametrize(
        ("role", "manage", "create"),
        [
            (Role.ADMIN, True, True),
            (Role.EDITOR, False, True),
            (Role.VIEWER, False, False),
            (None, False, False),
        ],
    )
    def test_predicates(self, role, manage, create):
        assert can_manage_members(role) is manage
        assert can_create_events(role) is create

    def test_plain_string_roles(self):
        assert can_manage_members("admin")
        assert can_create_events("editor")

    def test_guards_raise(self):
        with pytest.raises(AuthorizationError):
            ensure_can_manage_members(Role.EDITOR)
        with pytest.raises(AuthorizationError):
            ensure_can_create_events(Role.VIEWER)
        ensure_can_manage_members(Role.ADMIN)
        ensure_can_create_events(Role.EDITOR)


class TestDeleteEvent:
    def test_creator_today(self):
        assert can_delete_event(Role.EDITOR, _event(), "u2", today=TODAY)

    def test_creator_future(self):
        assert can_delete_event(Role.ADMIN, _event("2024-07-01"), "u2", today=TODAY)

    def test_past_event_refused(self):
        assert not can_delete_event(Role.EDITOR, _event("2024-06-14"), "u2", today=TODAY)

    def test_not_creator_refused_even_for_admin(self):
        assert not can_delete_event(Role.ADMIN, _event(), "u1", today=TODAY)

    def test_viewer_refused_even_as_creator(self):
        assert not can_delete_event(Role.VIEWER, _event(), "u2", today=TODAY)

    def test_guard_message(self):
        with pytest.raises(AuthorizationError, match="own upcoming events"):
            ensure_can_delete_event(Role.EDITOR, _event("2024-01-01"), "u2", today=TODAY)


class TestRemoveMember:
    def test_self_removal_refused_for_admin(self):
        with pytest.raises(AuthorizationError, match="can't remove yourself"):
            ensure_can_remove_member(Role.ADMIN, "u1", "u1")

    def test_non_admin_refused(self):
        with pytest.raises(AuthorizationError, match="Only admins"):
            ensure_can_remove_member(Role.EDITOR, "u3", "u2")

    def test_admin_removes_other(self):
        ensure_can_remove_member(Role.ADMIN, "u3", "u1")
