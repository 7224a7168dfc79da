"""Domain errors raised by the schedule core."""

from __future__ import annotations


class ScheduleError(Exception):
    """Base exception for caller-visible schedule errors."""


class ValidationError(ScheduleError):
    """Input the caller can correct (time ordering, empty ranges, bad form data).

    Always raised before anything is written.
    """


class AuthorizationError(ScheduleError):
    """The acting identity may not perform the operation."""


class NotFoundError(ScheduleError):
    """A referenced schedule, user, member or event does not exist."""
