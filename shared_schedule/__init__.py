"""Shared schedules: recurring events, member roles and calendar views."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from .access import can_create_events, can_delete_event, can_manage_members, resolve_role, role_of
from .actions import ActionResult, ScheduleActions
from .aggregation import build_day_sections, build_month_grid, group_by_date
from .config import ScheduleConfig
from .const import STORE_REST, DeletionChoice
from .coordinator import ScheduleCoordinator
from .deletion import async_apply_deletion, resolve_series_deletion
from .exceptions import AuthorizationError, NotFoundError, ScheduleError, ValidationError
from .identity import Identity, LocalIdentityProvider, LoggingNotifier, Notifier
from .models import RuntimeData
from .recurrence import expand_recurrence
from .series import EventRequest, RecurrenceRequest, build_event_series
from .store_api import DocumentStore, MemoryDocumentStore, RestDocumentStore

_LOGGER = logging.getLogger(__name__)


async def async_setup(
    config: ScheduleConfig | Mapping[str, Any] | None = None,
    *,
    notifier: Notifier | None = None,
    session: aiohttp.ClientSession | None = None,
) -> RuntimeData:
    """Build the store and action layer described by ``config``.

    Raises:
        ValidationError: If the configuration is invalid.
    """
    if not isinstance(config, ScheduleConfig):
        config = ScheduleConfig.from_mapping(config)

    store: DocumentStore
    if config.store == STORE_REST:
        store = RestDocumentStore(
            config.base_url or "",
            session,
            token=config.token,
            request_interval=config.request_interval,
            poll_interval=config.poll_interval,
        )
    else:
        store = MemoryDocumentStore()
    _LOGGER.debug("Set up %s store", config.store)

    return RuntimeData(
        config=config,
        store=store,
        actions=ScheduleActions(store, notifier or LoggingNotifier()),
    )


async def async_unload(runtime: RuntimeData) -> None:
    """Release the store (and its HTTP session, if it owns one)."""
    await runtime.store.async_close()


__all__ = [
    "async_setup",
    "async_unload",
    "ActionResult",
    "AuthorizationError",
    "DeletionChoice",
    "EventRequest",
    "Identity",
    "LocalIdentityProvider",
    "LoggingNotifier",
    "NotFoundError",
    "RecurrenceRequest",
    "RuntimeData",
    "ScheduleActions",
    "ScheduleConfig",
    "ScheduleCoordinator",
    "ScheduleError",
    "ValidationError",
    "async_apply_deletion",
    "build_day_sections",
    "build_event_series",
    "build_month_grid",
    "can_create_events",
    "can_delete_event",
    "can_manage_members",
    "expand_recurrence",
    "group_by_date",
    "resolve_role",
    "resolve_series_deletion",
    "role_of",
]
