"""Shared fixtures for unit tests.

This module provides broker gateway fakes and chore builders used across the
ChoreHub unit tests.
"""

from __future__ import annotations

import datetime
from collections.abc import Callable
from typing import Any

import pytest

from chorehub.exceptions import BrokerNotConnectedError
from chorehub.structs import Chore, MessageHandler, User

NOW = datetime.datetime(2024, 5, 10, 12, 0, tzinfo=datetime.UTC)


class RecordingGateway:
    """Broker gateway that records every publish instead of sending it."""

    def __init__(self) -> None:
        self.published: list[tuple[str, str]] = []
        self.subscriptions: dict[str, MessageHandler] = {}

    async def publish(self, payload: str, topic: str) -> None:
        self.published.append((payload, topic))

    async def subscribe(self, pattern: str, handler: MessageHandler) -> None:
        self.subscriptions[pattern] = handler

    def payloads_for(self, topic: str) -> list[str]:
        return [payload for payload, t in self.published if t == topic]

    @property
    def topics(self) -> list[str]:
        return [t for _, t in self.published]


class FailingGateway(RecordingGateway):
    """Broker gateway whose every publish fails as if the broker were down."""

    async def publish(self, payload: str, topic: str) -> None:
        self.published.append((payload, topic))
        raise BrokerNotConnectedError(topic)


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def failing_gateway() -> FailingGateway:
    return FailingGateway()


@pytest.fixture
def fixed_now() -> datetime.datetime:
    """Fixed reference instant used as "now" in status evaluation."""
    return NOW


@pytest.fixture
def make_chore() -> Callable[..., Chore]:
    """Build chores with sensible defaults; keyword arguments override fields."""

    def _make(chore_id: int = 1, name: str = "Take out trash", **overrides: Any) -> Chore:
        fields: dict[str, Any] = {
            "id": chore_id,
            "name": name,
            "created_date": NOW - datetime.timedelta(days=30),
        }
        fields.update(overrides)
        return Chore(**fields)

    return _make


@pytest.fixture
def alice() -> User:
    return User(id=1, name="alice", shortname="A")
