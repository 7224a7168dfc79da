"""Deciding and applying "this occurrence" vs "whole series" deletions."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from .const import DeletionChoice, events_collection
from .exceptions import ValidationError
from .store_api import BatchWrite, DocumentStore, Filter
from .store_api.models import Event

_LOGGER = logging.getLogger(__name__)


class DeletionScope(str, enum.Enum):
    SINGLE = "single"
    SERIES = "series"


@dataclass(frozen=True)
class DeletionPlan:
    """What a delete request will remove.

    ``event_id`` is always the clicked event; ``recurring_group_id`` is set
    only for series deletions.
    """

    scope: DeletionScope
    event_id: str
    recurring_group_id: str | None = None


def resolve_series_deletion(
    event: Event, choice: DeletionChoice | str | None = None
) -> DeletionPlan:
    """Decide what deleting ``event`` removes.

    Non-recurring events are deleted alone and ``choice`` is ignored.
    Recurring events need an explicit choice.

    Raises:
        ValidationError: For a recurring event without a (valid) choice.
    """
    if not event.is_recurring:
        return DeletionPlan(DeletionScope.SINGLE, event.id)

    if choice is None:
        raise ValidationError(
            "Choose whether to delete this event or all recurring events in the series"
        )
    try:
        choice = DeletionChoice(choice)
    except ValueError as err:
        raise ValidationError(f"Unknown deletion choice: {choice!r}") from err

    if choice is DeletionChoice.OCCURRENCE:
        return DeletionPlan(DeletionScope.SINGLE, event.id)
    if not event.recurring_group_id:
        _LOGGER.warning(
            "Recurring event %s has no series id; deleting it alone", event.id
        )
        return DeletionPlan(DeletionScope.SINGLE, event.id)
    return DeletionPlan(DeletionScope.SERIES, event.id, event.recurring_group_id)


async def async_apply_deletion(
    store: DocumentStore, schedule_id: str, plan: DeletionPlan
) -> int:
    """Carry out a plan and return how many records were deleted.

    A series is deleted in one atomic batch, so a failure leaves every
    occurrence in place. A series with no remaining occurrences deletes
    nothing and is not an error.
    """
    collection = events_collection(schedule_id)
    if plan.scope is DeletionScope.SINGLE:
        await store.async_delete_document(collection, plan.event_id)
        return 1

    docs = await store.async_query_collection(
        collection, [Filter("recurring_group_id", "==", plan.recurring_group_id)]
    )
    if not docs:
        _LOGGER.debug("Series %s already empty", plan.recurring_group_id)
        return 0
    await store.async_atomic_batch(
        [BatchWrite.delete(collection, str(doc["id"])) for doc in docs]
    )
    _LOGGER.debug("Deleted %d occurrence(s) of %s", len(docs), plan.recurring_group_id)
    return len(docs)
