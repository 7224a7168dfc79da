"""In-process document store with push notifications."""

from __future__ import annotations

import itertools
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from ._base import (
    BatchWrite,
    Document,
    ErrorCallback,
    Filter,
    OrderBy,
    SnapshotCallback,
    Subscription,
    apply_query,
)
from ._serialization import camelize, decamelize
from .exceptions import BatchCommitError, StoreError

_LOGGER = logging.getLogger(__name__)


@dataclass
class _Listener:
    collection: str
    callback: SnapshotCallback
    filters: tuple[Filter, ...]
    order_by: tuple[OrderBy, ...]
    on_error: ErrorCallback | None


class MemoryDocumentStore:
    """A document store that lives in memory.

    Writes are applied synchronously between awaits, so readers never observe
    a partially applied batch. Every committed write pushes a fresh snapshot to
    the subscribers of the affected collections; a new subscriber receives the
    current snapshot immediately.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._listeners: dict[int, _Listener] = {}
        self._listener_ids = itertools.count()
        self._closed = False

    @property
    def subscription_count(self) -> int:
        """Number of live subscriptions (useful to detect leaked handles)."""
        return len(self._listeners)

    # ------------------------------------------------------------------ #
    #  Reads
    # ------------------------------------------------------------------ #

    async def async_get_document(self, collection: str, doc_id: str) -> Document | None:
        self._ensure_open()
        doc = self._collections.get(collection, {}).get(doc_id)
        return dict(doc) if doc is not None else None

    async def async_query_collection(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
    ) -> list[Document]:
        self._ensure_open()
        return self._snapshot(collection, filters, order_by)

    def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        self._ensure_open()
        listener_id = next(self._listener_ids)
        listener = _Listener(collection, callback, tuple(filters), tuple(order_by), on_error)
        self._listeners[listener_id] = listener
        _LOGGER.debug("Subscribed to %s (listener %s)", collection, listener_id)
        self._deliver(listener)
        return Subscription(collection, lambda: self._listeners.pop(listener_id, None))

    # ------------------------------------------------------------------ #
    #  Writes
    # ------------------------------------------------------------------ #

    async def async_create_document(self, collection: str, data: Document) -> str:
        doc_id = uuid.uuid4().hex
        await self.async_set_document(collection, doc_id, data)
        return doc_id

    async def async_set_document(self, collection: str, doc_id: str, data: Document) -> None:
        await self.async_atomic_batch([BatchWrite.set(collection, doc_id, data)])

    async def async_delete_document(self, collection: str, doc_id: str) -> None:
        await self.async_atomic_batch([BatchWrite.delete(collection, doc_id)])

    async def async_atomic_batch(self, writes: Sequence[BatchWrite]) -> None:
        """Apply all writes or none of them."""
        self._ensure_open()
        prepared: list[tuple[BatchWrite, Document]] = []
        for write in writes:
            if not write.collection or not write.doc_id:
                raise BatchCommitError(f"Invalid document path in batch: {write!r}")
            if write.kind == "set":
                prepared.append((write, _normalize(write.data, write.doc_id)))
            elif write.kind == "delete":
                prepared.append((write, {}))
            else:
                raise BatchCommitError(f"Unsupported batch write: {write.kind!r}")

        touched: set[str] = set()
        for write, doc in prepared:
            docs = self._collections.setdefault(write.collection, {})
            if write.kind == "set":
                docs[write.doc_id] = doc
            else:
                docs.pop(write.doc_id, None)
            touched.add(write.collection)

        if touched:
            _LOGGER.debug("Committed %d write(s) to %s", len(prepared), sorted(touched))
            self._notify(touched)

    async def async_close(self) -> None:
        self._listeners.clear()
        self._closed = True

    # ------------------------------------------------------------------ #
    #  Internals
    # ------------------------------------------------------------------ #

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreError("Store is closed")

    def _snapshot(
        self,
        collection: str,
        filters: Sequence[Filter],
        order_by: Sequence[OrderBy],
    ) -> list[Document]:
        docs = (dict(doc) for doc in self._collections.get(collection, {}).values())
        return apply_query(docs, filters, order_by)

    def _notify(self, collections: set[str]) -> None:
        for listener_id, listener in list(self._listeners.items()):
            # An earlier callback may have cancelled this one.
            if listener_id in self._listeners and listener.collection in collections:
                self._deliver(listener)

    def _deliver(self, listener: _Listener) -> None:
        snapshot = self._snapshot(listener.collection, listener.filters, listener.order_by)
        try:
            listener.callback(snapshot)
        except Exception as err:  # noqa: BLE001
            _LOGGER.warning(
                "Subscriber on %s failed to handle snapshot",
                listener.collection,
                exc_info=True,
            )
            if listener.on_error is not None:
                listener.on_error(err)


def _normalize(data: Document, doc_id: str) -> Document:
    """Make a stored copy: JSON-safe values and the id under ``"id"``."""
    doc = decamelize(camelize({k: v for k, v in data.items() if k != "id"}))
    doc["id"] = doc_id
    return doc
