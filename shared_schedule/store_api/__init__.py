"""Document store adapters for shared schedules."""

from .const import __version__
from ._base import BatchWrite, DocumentStore, Filter, OrderBy, Subscription, apply_query
from ._client import RestDocumentStore
from ._memory import MemoryDocumentStore
from .exceptions import (
    AuthenticationError,
    BatchCommitError,
    RateLimitError,
    StoreConnectionError,
    StoreError,
    StoreResponseError,
)
from .models import Event, Member, RecurrencePattern, Role, Schedule, UserProfile

__all__ = [
    "__version__",
    "BatchWrite",
    "DocumentStore",
    "Filter",
    "OrderBy",
    "Subscription",
    "apply_query",
    "RestDocumentStore",
    "MemoryDocumentStore",
    "AuthenticationError",
    "BatchCommitError",
    "RateLimitError",
    "StoreConnectionError",
    "StoreError",
    "StoreResponseError",
    "Event",
    "Member",
    "RecurrencePattern",
    "Role",
    "Schedule",
    "UserProfile",
]
