from __future__ import annotations

from typing import Any

import pytest

from listener.app.config.settings import Settings
from listener.app.domain.models import Event


class FakeDelivery:
    """Implements Delivery for tests; records every terminal call."""

    def __init__(self, body: bytes, *, raise_on_settle: Exception | None = None) -> None:
        self.body = body
        self.calls: list[str] = []
        self._raise_on_settle = raise_on_settle

    async def ack(self) -> None:
        self.calls.append("ack")
        if self._raise_on_settle is not None:
            raise self._raise_on_settle

    async def nack(self, *, requeue: bool = True) -> None:
        self.calls.append("reject_requeue" if requeue else "reject_discard")
        if self._raise_on_settle is not None:
            raise self._raise_on_settle


class FakeSubscription:
    """Implements Subscription over a fixed list of deliveries."""

    def __init__(self, deliveries: list[FakeDelivery]) -> None:
        self._deliveries = deliveries
        self.opened = False
        self.closed = False

    async def open(self) -> None:
        self.opened = True

    async def deliveries(self):
        for delivery in self._deliveries:
            yield delivery

    async def close(self) -> None:
        self.closed = True


class RecordingHandler:
    """Handler that records events and optionally raises."""

    def __init__(self, exc: Exception | None = None) -> None:
        self.events: list[Event[Any]] = []
        self._exc = exc

    async def __call__(self, event: Event[Any]) -> None:
        self.events.append(event)
        if self._exc is not None:
            raise self._exc


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        BROKER_HOST="localhost",
        EXCHANGE_NAME="orders",
        QUEUE_NAME="orders.billing",
        INITIAL_BACKOFF_SECONDS=0.0,
        MAX_BACKOFF_SECONDS=0.0,
        MAX_CONNECTION_ATTEMPTS=2,
    )


@pytest.fixture()
def inmemory_settings() -> Settings:
    return Settings(
        BROKER_HOST="localhost",
        EXCHANGE_NAME="orders",
        QUEUE_NAME="orders.billing",
        CONSUMER_BACKEND="inmemory",
        PUBLISHER_BACKEND="inmemory",
    )
