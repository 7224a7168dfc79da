"""HTTP client for a JSON document service."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import aiohttp

from ._base import (
    BatchWrite,
    Document,
    ErrorCallback,
    Filter,
    OrderBy,
    SnapshotCallback,
    Subscription,
)
from ._serialization import camelize, decamelize, field_name
from ._throttle import RequestThrottle
from .const import (
    CLIENT_ID,
    COLLECTION_ENDPOINT,
    COMMIT_ENDPOINT,
    DEFAULT_POLL_SECONDS,
    DEFAULT_THROTTLE_SECONDS,
    DOCUMENT_ENDPOINT,
    HEADER_AUTHORIZATION,
    HEADER_CLIENT,
    QUERY_ENDPOINT,
)
from .exceptions import (
    AuthenticationError,
    BatchCommitError,
    RateLimitError,
    StoreConnectionError,
    StoreError,
    StoreResponseError,
)

_LOGGER = logging.getLogger(__name__)


class RestDocumentStore:
    """Async client for a JSON document service.

    Usage::

        async with aiohttp.ClientSession() as session:
            store = RestDocumentStore("https://store.example.com/v1", session, token=token)
            schedule = await store.async_get_document("schedules", "abc")

    If no session is provided, the client creates and manages its own.
    The caller is responsible for calling ``async_close()`` when done
    (or use the client as an async context manager).

    The service has no push channel, so ``subscribe()`` polls the query every
    ``poll_interval`` seconds and delivers a snapshot only when it changed.
    """

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession | None = None,
        *,
        token: str | None = None,
        request_interval: float = DEFAULT_THROTTLE_SECONDS,
        poll_interval: float = DEFAULT_POLL_SECONDS,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_session = session is None
        self._session = session or aiohttp.ClientSession()
        self._token = token
        self._throttle = RequestThrottle(min_interval=request_interval)
        self._poll_interval = poll_interval
        self._pollers: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> RestDocumentStore:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.async_close()

    def set_token(self, token: str | None) -> None:
        """Replace the bearer token (e.g. after the identity provider refreshed it)."""
        self._token = token

    async def async_close(self) -> None:
        """Stop all pollers and close the HTTP session if the client owns it."""
        for task in list(self._pollers):
            task.cancel()
        if self._pollers:
            await asyncio.gather(*self._pollers, return_exceptions=True)
        self._pollers.clear()
        if self._owns_session:
            await self._session.close()

    # ------------------------------------------------------------------ #
    #  Reads
    # ------------------------------------------------------------------ #

    async def async_get_document(self, collection: str, doc_id: str) -> Document | None:
        """Fetch one document, or ``None`` if it does not exist."""
        url = DOCUMENT_ENDPOINT.format(
            base_url=self._base_url, collection=collection, doc_id=doc_id
        )
        try:
            data = await self._request("GET", url)
        except StoreResponseError as err:
            if err.status_code == 404:
                return None
            raise
        return _with_id(data, doc_id)

    async def async_query_collection(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
    ) -> list[Document]:
        """Run a filtered, ordered query over one collection."""
        body = {
            "collection": collection,
            "where": [
                {"field": field_name(f.field), "op": f.op, "value": camelize(f.value)}
                for f in filters
            ],
            "order_by": [
                {"field": field_name(o.field), "direction": "desc" if o.descending else "asc"}
                for o in order_by
            ],
        }
        url = QUERY_ENDPOINT.format(base_url=self._base_url)
        data = await self._request("POST", url, json_body=body)
        raw = data if isinstance(data, list) else (data or {}).get("documents", [])
        return [doc for doc in raw if isinstance(doc, dict)]

    def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Sequence[Filter] = (),
        order_by: Sequence[OrderBy] = (),
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Poll a query and push changed snapshots to ``callback``.

        Must be called from within a running event loop.
        """
        task = asyncio.get_running_loop().create_task(
            self._poll(collection, callback, tuple(filters), tuple(order_by), on_error)
        )
        self._pollers.add(task)
        task.add_done_callback(self._pollers.discard)
        _LOGGER.debug("Polling %s every %.1fs", collection, self._poll_interval)
        return Subscription(collection, task.cancel)

    # ------------------------------------------------------------------ #
    #  Writes
    # ------------------------------------------------------------------ #

    async def async_create_document(self, collection: str, data: Document) -> str:
        """Create a document with a server-assigned id and return the id."""
        url = COLLECTION_ENDPOINT.format(base_url=self._base_url, collection=collection)
        body = {k: v for k, v in data.items() if k != "id"}
        result = await self._request("POST", url, json_body=body)
        if not isinstance(result, dict) or "id" not in result:
            raise StoreResponseError("Create response did not include a document id")
        return str(result["id"])

    async def async_set_document(self, collection: str, doc_id: str, data: Document) -> None:
        """Create or overwrite the document at ``collection/doc_id``."""
        url = DOCUMENT_ENDPOINT.format(
            base_url=self._base_url, collection=collection, doc_id=doc_id
        )
        body = {k: v for k, v in data.items() if k != "id"}
        await self._request("PUT", url, json_body=body)

    async def async_delete_document(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing document is not an error."""
        url = DOCUMENT_ENDPOINT.format(
            base_url=self._base_url, collection=collection, doc_id=doc_id
        )
        try:
            await self._request("DELETE", url)
        except StoreResponseError as err:
            if err.status_code != 404:
                raise

    async def async_atomic_batch(self, writes: Sequence[BatchWrite]) -> None:
        """Commit all writes in a single all-or-nothing request.

        Raises:
            BatchCommitError: If the service rejected the batch (HTTP 409).
        """
        if not writes:
            return
        body = {
            "writes": [
                {
                    "op": w.kind,
                    "collection": w.collection,
                    "id": w.doc_id,
                    **({"data": {k: v for k, v in w.data.items() if k != "id"}} if w.kind == "set" else {}),
                }
                for w in writes
            ]
        }
        url = COMMIT_ENDPOINT.format(base_url=self._base_url)
        try:
            await self._request("POST", url, json_body=body)
        except StoreResponseError as err:
            if err.status_code == 409:
                raise BatchCommitError(f"Batch of {len(writes)} writes rejected: {err}") from err
            raise

    # ------------------------------------------------------------------ #
    #  Polling
    # ------------------------------------------------------------------ #

    async def _poll(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: tuple[Filter, ...],
        order_by: tuple[OrderBy, ...],
        on_error: ErrorCallback | None,
    ) -> None:
        last: list[Document] | None = None
        while True:
            delay = self._poll_interval
            try:
                snapshot = await self.async_query_collection(collection, filters, order_by)
            except StoreError as err:
                if isinstance(err, RateLimitError) and err.retry_after:
                    delay = max(delay, err.retry_after)
                _LOGGER.warning("Polling %s failed: %s", collection, err)
                if on_error is not None:
                    on_error(err)
            else:
                if snapshot != last:
                    last = snapshot
                    try:
                        callback(snapshot)
                    except Exception as err:  # noqa: BLE001
                        _LOGGER.warning(
                            "Subscriber on %s failed to handle snapshot",
                            collection,
                            exc_info=True,
                        )
                        if on_error is not None:
                            on_error(err)
            await asyncio.sleep(delay)

    # ------------------------------------------------------------------ #
    #  Internal HTTP layer
    # ------------------------------------------------------------------ #

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", HEADER_CLIENT: CLIENT_ID}
        if self._token:
            headers[HEADER_AUTHORIZATION] = f"Bearer {self._token}"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Execute a store request with throttling, auth, and serialization.

        All outgoing JSON bodies are camelized; all incoming JSON responses
        are decamelized.

        Raises:
            AuthenticationError: On 401/403 responses.
            RateLimitError: On 429 responses.
            StoreResponseError: On other non-2xx responses.
            StoreConnectionError: On network errors.
        """
        await self._throttle.acquire()

        kwargs: dict[str, Any] = {"headers": self._headers()}
        if json_body is not None:
            kwargs["json"] = camelize(json_body)

        _LOGGER.debug("%s %s", method, url)
        try:
            async with self._session.request(method, url, **kwargs) as resp:
                if resp.status in (401, 403):
                    raise AuthenticationError(f"Store rejected credentials: HTTP {resp.status}")

                if resp.status == 429:
                    retry_after = resp.headers.get("Retry-After")
                    raise RateLimitError(
                        retry_after=float(retry_after) if retry_after else None,
                    )

                if resp.status == 204:
                    return None

                if resp.status >= 400:
                    body = await resp.text()
                    raise StoreResponseError(
                        f"Store error: HTTP {resp.status} - {body}",
                        status_code=resp.status,
                    )

                if resp.content_length == 0:
                    return None
                data = await resp.json()
                return decamelize(data)

        except aiohttp.ClientError as err:
            raise StoreConnectionError(f"Connection error: {err}") from err


def _with_id(data: Any, doc_id: str) -> Document:
    doc = dict(data) if isinstance(data, dict) else {}
    doc.setdefault("id", doc_id)
    return doc
