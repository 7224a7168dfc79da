"""Constants for shared schedules."""

from __future__ import annotations

import enum
from typing import Final

DOMAIN: Final = "shared_schedule"

SCHEDULES_COLLECTION: Final = "schedules"
USERS_COLLECTION: Final = "users"
MEMBERS_COLLECTION: Final = "schedules/{schedule_id}/members"
EVENTS_COLLECTION: Final = "schedules/{schedule_id}/events"

MAX_OCCURRENCES: Final = 100
MAX_VISIBLE_EVENTS_PER_DAY: Final = 3
BOOKING_WINDOW_YEARS: Final = 1

CONF_STORE: Final = "store"
CONF_BASE_URL: Final = "base_url"
CONF_TOKEN: Final = "token"
CONF_POLL_INTERVAL: Final = "poll_interval"
CONF_REQUEST_INTERVAL: Final = "request_interval"

STORE_MEMORY: Final = "memory"
STORE_REST: Final = "rest"

DEFAULT_POLL_INTERVAL_SECONDS: Final = 5.0
DEFAULT_REQUEST_INTERVAL_SECONDS: Final = 0.1


class DeletionChoice(str, enum.Enum):
    """What to delete when the target event belongs to a series."""

    OCCURRENCE = "occurrence"
    SERIES = "series"

    @classmethod
    def from_confirm(cls, confirmed: bool) -> DeletionChoice:
        """Map a yes/no "delete the whole series?" prompt to a choice."""
        return cls.SERIES if confirmed else cls.OCCURRENCE


class NotificationKind(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"


class RoleSource(str, enum.Enum):
    """Where an identity's effective role came from."""

    OWNER = "owner"
    MEMBER = "member"
    NONE = "none"


def members_collection(schedule_id: str) -> str:
    return MEMBERS_COLLECTION.format(schedule_id=schedule_id)


def events_collection(schedule_id: str) -> str:
    return EVENTS_COLLECTION.format(schedule_id=schedule_id)
