"""Identity and notification boundaries consumed by the schedule actions."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .const import NotificationKind
from .store_api import Subscription

_LOGGER = logging.getLogger(__name__)

IdentityCallback = Callable[["Identity | None"], None]


@dataclass(frozen=True)
class Identity:
    """The signed-in user acting on a schedule."""

    id: str
    email: str
    display_name: str | None = None

    @property
    def name(self) -> str:
        """Display name, falling back to the e-mail address."""
        return self.display_name or self.email


class IdentityProvider(Protocol):
    def current_identity(self) -> Identity | None:
        ...

    def subscribe(self, callback: IdentityCallback) -> Subscription:
        ...


class Notifier(Protocol):
    def notify(self, kind: NotificationKind, message: str) -> None:
        ...


class LocalIdentityProvider:
    """Keeps the signed-in identity in process and announces transitions.

    Credential checks happen elsewhere; this only tracks who is signed in.
    """

    def __init__(self, identity: Identity | None = None) -> None:
        self._identity = identity
        self._listeners: dict[int, IdentityCallback] = {}
        self._listener_ids = itertools.count()

    def current_identity(self) -> Identity | None:
        return self._identity

    def subscribe(self, callback: IdentityCallback) -> Subscription:
        """Call ``callback`` now and on every sign-in/sign-out."""
        listener_id = next(self._listener_ids)
        self._listeners[listener_id] = callback
        callback(self._identity)
        return Subscription("identity", lambda: self._listeners.pop(listener_id, None))

    def sign_in(self, identity: Identity) -> None:
        self._set(identity)

    def sign_out(self) -> None:
        self._set(None)

    def _set(self, identity: Identity | None) -> None:
        if identity == self._identity:
            return
        self._identity = identity
        _LOGGER.debug("Identity changed to %s", identity.id if identity else None)
        for callback in list(self._listeners.values()):
            callback(identity)


class LoggingNotifier:
    """Notifier that writes user-facing messages to the log."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _LOGGER

    def notify(self, kind: NotificationKind, message: str) -> None:
        if kind is NotificationKind.ERROR:
            self._logger.error(message)
        else:
            self._logger.info(message)
