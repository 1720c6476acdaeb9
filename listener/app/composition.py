"""Listener composition root: build and lifecycle-manage concrete dependencies.

Composition may: import factories, store port types, manage high-level
lifecycle. Backend, payload format and ack mode all come from Settings.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from listener.app.application.consumption_loop import ConsumptionLoop
from listener.app.config.settings import Settings
from listener.app.domain.codec import EventCodec, create_codec
from listener.app.infrastructure.messaging.factory import create_publisher, create_subscription
from listener.app.infrastructure.messaging.inmemory.in_memory_broker import InMemoryBroker
from listener.app.ports.message_publisher import MessagePublisher
from listener.app.ports.subscription import Subscription


class ListenerDependencies:
    """Holds wired listener dependencies and their lifecycle."""

    def __init__(self, *, settings: Settings, broker: InMemoryBroker | None = None) -> None:
        self._settings = settings
        # shared by subscription and publisher when both use the inmemory backend
        self._broker = broker or InMemoryBroker()
        self._codec: EventCodec[Any] = create_codec(settings.payload_format)
        self._subscription: Subscription | None = None
        self._publisher: MessagePublisher | None = None
        self._consumption_loop = ConsumptionLoop(self._codec, auto_ack=settings.auto_ack)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def codec(self) -> EventCodec[Any]:
        return self._codec

    @property
    def consumption_loop(self) -> ConsumptionLoop[Any]:
        return self._consumption_loop

    @property
    def subscription(self) -> Subscription:
        if self._subscription is None:
            raise RuntimeError("subscription is not initialized")
        return self._subscription

    @property
    def publisher(self) -> MessagePublisher:
        if self._publisher is None:
            raise RuntimeError("publisher is not initialized")
        return self._publisher

    async def connect(self) -> None:
        """Open the subscription; SubscriptionSetupError propagates to the caller."""
        subscription = create_subscription(self._settings, broker=self._broker)
        await subscription.open()
        self._subscription = subscription

    async def connect_publisher(self) -> MessagePublisher:
        if self._publisher is None:
            publisher = create_publisher(self._settings, self._codec, broker=self._broker)
            await publisher.connect()
            self._publisher = publisher
        return self._publisher

    async def close(self) -> None:
        if self._subscription is not None:
            try:
                await self._subscription.close()
            except Exception as exc:
                logger.warning("subscription close failed: {}", exc)
            self._subscription = None

        if self._publisher is not None:
            try:
                await self._publisher.close()
            except Exception as exc:
                logger.warning("publisher close failed: {}", exc)
            self._publisher = None


def create_listener_dependencies(
    settings: Settings | None = None,
    *,
    broker: InMemoryBroker | None = None,
) -> ListenerDependencies:
    return ListenerDependencies(settings=settings or Settings(), broker=broker)
