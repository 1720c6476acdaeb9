"""Messaging factory: selects subscription and publisher implementations from config.

Only place that imports concrete messaging adapters.
"""
from __future__ import annotations

from typing import Any

from listener.app.config.settings import Settings
from listener.app.domain.codec import EventCodec
from listener.app.infrastructure.messaging.inmemory.in_memory_broker import (
    InMemoryBroker,
    InMemoryPublisher,
    InMemorySubscription,
)
from listener.app.infrastructure.messaging.rabbitmq.rabbitmq_publisher import RabbitMQPublisher
from listener.app.infrastructure.messaging.rabbitmq.rabbitmq_subscription import RabbitMQSubscription
from listener.app.ports.message_publisher import MessagePublisher
from listener.app.ports.subscription import Subscription


def create_subscription(settings: Settings, *, broker: InMemoryBroker | None = None) -> Subscription:
    backend = settings.consumer_backend.strip().lower()

    if backend == "rabbitmq":
        return RabbitMQSubscription(settings)

    if backend == "inmemory":
        return InMemorySubscription(broker or InMemoryBroker(), settings.exchange_name, settings.queue_name)

    raise ValueError(f"Unsupported consumer backend: {backend}")


def create_publisher(
    settings: Settings,
    codec: EventCodec[Any],
    *,
    broker: InMemoryBroker | None = None,
) -> MessagePublisher:
    backend = settings.publisher_backend.strip().lower()

    if backend == "rabbitmq":
        return RabbitMQPublisher(settings, codec)

    if backend == "inmemory":
        return InMemoryPublisher(broker or InMemoryBroker(), codec)

    raise ValueError(f"Unsupported publisher backend: {backend}")
