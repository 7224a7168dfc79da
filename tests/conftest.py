"""Shared fixtures: an in-memory store, a recording notifier and test identities."""

from __future__ import annotations

import pytest

from shared_schedule.const import NotificationKind
from shared_schedule.identity import Identity
from shared_schedule.store_api import MemoryDocumentStore

OWNER = Identity(id="u1", email="owner@example.com", display_name="Olivia Owner")
EDITOR = Identity(id="u2", email="editor@example.com", display_name="Eddie Editor")
VIEWER = Identity(id="u3", email="viewer@example.com", display_name=None)
OUTSIDER = Identity(id="u9", email="outsider@example.com", display_name="Otto")


class RecordingNotifier:
    """Collects notifications instead of showing them."""

    def __init__(self) -> None:
        self.messages: list[tuple[NotificationKind, str]] = []

    def notify(self, kind: NotificationKind, message: str) -> None:
        self.messages.append((kind, message))

    @property
    def last(self) -> tuple[NotificationKind, str] | None:
        return self.messages[-1] if self.messages else None


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
