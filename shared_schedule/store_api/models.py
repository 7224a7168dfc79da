"""Data models for stored schedule documents."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from dateutil.parser import isoparse


class Role(str, enum.Enum):
    """Access role of a schedule member."""

    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class RecurrencePattern(str, enum.Enum):
    """How a recurring event repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    WEEKDAYS = "weekdays"
    CUSTOM = "custom"


@dataclass(frozen=True)
class UserProfile:
    """A registered user, as stored in the ``users`` collection."""

    id: str
    email: str
    display_name: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> UserProfile:
        """Construct from a decamelized store document."""
        return cls(
            id=str(data["id"]),
            email=data.get("email", ""),
            display_name=data.get("display_name"),
            created_at=_parse_datetime(data.get("created_at")),
        )

    @property
    def name(self) -> str:
        """Display name, falling back to the e-mail address."""
        return self.display_name or self.email


@dataclass(frozen=True)
class Schedule:
    """A shared schedule. ``owner_id`` never changes after creation."""

    id: str
    title: str
    owner_id: str
    owner_name: str
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Schedule:
        """Construct from a decamelized store document."""
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            owner_id=str(data["owner_id"]),
            owner_name=data.get("owner_name", ""),
            description=data.get("description") or None,
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description or "",
            "owner_id": self.owner_id,
            "owner_name": self.owner_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class Member:
    """Membership of one identity in one schedule.

    The document id is the member's identity, so a schedule holds at most
    one record per identity.
    """

    id: str
    email: str
    display_name: str
    role: Role
    added_at: datetime | None = None
    added_by: str | None = None

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Member:
        """Construct from a decamelized store document."""
        email = data.get("email", "")
        return cls(
            id=str(data["id"]),
            email=email,
            display_name=data.get("display_name") or email,
            role=Role(data.get("role", Role.VIEWER.value)),
            added_at=_parse_datetime(data.get("added_at")),
            added_by=data.get("added_by"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role,
            "added_at": self.added_at,
            "added_by": self.added_by,
        }


@dataclass(frozen=True)
class Event:
    """One occurrence on a schedule.

    ``start_time`` and ``end_time`` are naive local datetimes on the calendar
    day named by ``date`` (ISO ``YYYY-MM-DD``).
    """

    id: str
    title: str
    date: str
    start_time: datetime
    end_time: datetime
    created_by: str
    created_by_name: str
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_recurring: bool = False
    recurring_group_id: str | None = None
    recurring_type: RecurrencePattern | None = None

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Event:
        """Construct from a decamelized store document."""
        recurring_type = data.get("recurring_type")
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            date=str(data["date"]),
            start_time=_parse_local(data["start_time"]),
            end_time=_parse_local(data["end_time"]),
            created_by=str(data.get("created_by", "")),
            created_by_name=data.get("created_by_name", ""),
            description=data.get("description") or None,
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
            is_recurring=bool(data.get("is_recurring", False)),
            recurring_group_id=data.get("recurring_group_id"),
            recurring_type=RecurrencePattern(recurring_type) if recurring_type else None,
        )

    def to_document(self) -> dict[str, Any]:
        """Convert to a store document; series fields only on recurring events."""
        doc: dict[str, Any] = {
            "title": self.title,
            "description": self.description or "",
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "created_by": self.created_by,
            "created_by_name": self.created_by_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_recurring": self.is_recurring,
        }
        if self.is_recurring:
            doc["recurring_group_id"] = self.recurring_group_id
            doc["recurring_type"] = self.recurring_type
        return doc

    @property
    def day(self) -> date:
        """The event's calendar date as a ``date``."""
        return date.fromisoformat(self.date)


def _parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO timestamp, tolerating missing values."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return isoparse(str(value))


def _parse_local(value: Any) -> datetime:
    """Parse an event time into a naive local-clock datetime.

    Documents written with a UTC offset are shifted to the local clock.
    """
    parsed = value if isinstance(value, datetime) else isoparse(str(value))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
