"""Runtime data models for a configured schedule service."""

from __future__ import annotations

from dataclasses import dataclass

from .actions import ScheduleActions
from .config import ScheduleConfig
from .store_api import DocumentStore


@dataclass
class RuntimeData:
    """What ``async_setup`` hands back to the caller."""

    config: ScheduleConfig
    store: DocumentStore
    actions: ScheduleActions
