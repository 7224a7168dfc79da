"""Store-agnostic query types and the document store contract."""

from __future__ import annotations

import logging
import operator
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from .const import FILTER_OPERATORS

_LOGGER = logging.getLogger(__name__)

Document = dict[str, Any]
SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class Filter:
    """A single field comparison, e.g. ``Filter("date", ">=", "2024-01-01")``.

    ``field`` is the snake_case record field; adapters translate it to the
    stored name.
    """

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op!r}")

    def matches(self, document: Document) -> bool:
        if self.field not in document:
            return False
        try:
            return _OPERATORS[self.op](document[self.field], self.value)
        except TypeError:
            return False


@dataclass(frozen=True)
class OrderBy:
    """Sort key for a collection query."""

    field: str
    descending: bool = False


@dataclass(frozen=True)
class BatchWrite:
    """One write inside an atomic batch."""

    kind: Literal["set", "delete"]
    collection: str
    doc_id: str
    data: Document = field(default_factory=dict)

    @classmethod
    def set(cls, collection: str, doc_id: str, data: Document) -> BatchWrite:
        return cls("set", collection, doc_id, dict(data))

    @classmethod
    def delete(cls, collection: str, doc_id: str) -> BatchWrite:
        return cls("delete", collection, doc_id)


class Subscription:
    """Handle for a live query; call ``cancel()`` to stop receiving snapshots.

    Cancelling is idempotent. Once cancelled, no further callbacks fire.
    """

    def __init__(self, collection: str, on_cancel: Callable[[], None]) -> None:
        self._collection = collection
        self._on_cancel = on_cancel
        self._active = True

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        _LOGGER.debug("Cancelling subscription on %s", self._collection)
        self._on_cancel()


class DocumentStore(Protocol):
    """Persistence boundary for schedules, members, events and users.

    Documents are plain dicts with snake_case keys and the document id under
    ``"id"``.
    """

    async def async_get_document(self, collection: str, doc_id: str) -> Document | None:
        ...

    async def async_query_collection(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
    ) -> list[Document]:
        ...

    def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        ...

    async def async_create_document(self, collection: str, data: Document) -> str:
        ...

    async def async_set_document(self, collection: str, doc_id: str, data: Document) -> None:
        ...

    async def async_delete_document(self, collection: str, doc_id: str) -> None:
        ...

    async def async_atomic_batch(self, writes: Sequence[BatchWrite]) -> None:
        ...

    async def async_close(self) -> None:
        ...


def apply_query(
    documents: Iterable[Document],
    filters: Sequence[Filter] = (),
    order_by: Sequence[OrderBy] = (),
) -> list[Document]:
    """Filter and sort documents the way the store would."""
    result = [doc for doc in documents if all(f.matches(doc) for f in filters)]
    # Stable sorts applied from the least significant key.
    for order in reversed(order_by):
        result.sort(key=_sort_key(order.field), reverse=order.descending)
    return result


def _sort_key(name: str) -> Callable[[Document], tuple[bool, Any]]:
    """Missing values sort after present ones."""

    def key(doc: Document) -> tuple[bool, Any]:
        value = doc.get(name)
        return (value is None, 0 if value is None else value)

    return key
