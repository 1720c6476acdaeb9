"""
RabbitMQ sender: encode an event and publish it to an exchange, fire-and-forget.

The channel is opened without publisher confirms; send() returns once the frame
is handed to the connection, not when the broker has routed it.
"""
from __future__ import annotations

import asyncio
from typing import Any

import aio_pika
from aio_pika import DeliveryMode, Message
from loguru import logger

from listener.app.config.settings import Settings
from listener.app.core import SERVICE_NAME
from listener.app.core.backoff import exponential_backoff
from listener.app.domain.codec import CONTENT_TYPE, EventCodec
from listener.app.domain.models import Event
from listener.app.infrastructure.messaging.rabbitmq.constants import PublisherState


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class RabbitMQPublisher:
    """MessagePublisher implementation"""

    def __init__(self, settings: Settings, codec: EventCodec[Any]) -> None:
        self._settings = settings
        self._codec = codec
        self._state = PublisherState.DISCONNECTED
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._channel: aio_pika.abc.AbstractChannel | None = None
        self._exchanges: dict[str, aio_pika.abc.AbstractExchange] = {}
        self._lock = asyncio.Lock()

    @property
    def state(self) -> PublisherState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state == PublisherState.READY

    async def connect(self) -> None:
        self._state = PublisherState.CONNECTING
        attempt = 0
        async for delay in exponential_backoff(
            self._settings.initial_backoff_seconds,
            self._settings.max_backoff_seconds,
            self._settings.backoff_multiplier,
            self._settings.max_connection_attempts,
        ):
            attempt += 1
            _log("rmq_connect_attempt", attempt=attempt, delay=delay, role="publisher")
            try:
                self._connection = await aio_pika.connect_robust(self._settings.amqp_url)
                break
            except Exception as e:
                logger.warning("rmq connect failed: {}", e)
                if attempt >= self._settings.max_connection_attempts:
                    self._state = PublisherState.DISCONNECTED
                    raise
        if self._connection is None:
            raise RuntimeError("publisher is not connected")
        self._channel = await self._connection.channel(publisher_confirms=False)
        self._state = PublisherState.READY
        _log("rmq_connected", role="publisher")

    async def _exchange(self, name: str) -> aio_pika.abc.AbstractExchange:
        exchange = self._exchanges.get(name)
        if exchange is None:
            if self._channel is None:
                raise RuntimeError("publisher_not_ready")
            exchange = await self._channel.get_exchange(name, ensure=False)
            self._exchanges[name] = exchange
        return exchange

    async def send(self, exchange: str, event: Event[Any], *, routing_key: str = "") -> None:
        if self._state != PublisherState.READY:
            _log("send_rejected", reason="publisher_not_ready")
            raise RuntimeError("publisher_not_ready")
        body = self._codec.encode(event)
        message = Message(body, content_type=CONTENT_TYPE, delivery_mode=DeliveryMode.PERSISTENT)
        async with self._lock:
            target = await self._exchange(exchange)
            await target.publish(message, routing_key=routing_key)
        _log("message_sent", exchange=exchange, event_name=event.name, size=len(body))

    async def close(self) -> None:
        self._state = PublisherState.CLOSING
        async with self._lock:
            self._exchanges.clear()
            if self._channel:
                try:
                    await self._channel.close()
                except Exception as e:
                    logger.warning("channel close failed (continuing to close connection): {}", e)
                self._channel = None
            if self._connection:
                try:
                    await self._connection.close()
                except Exception as e:
                    logger.warning("connection close failed: {}", e)
                self._connection = None
        self._state = PublisherState.CLOSED
