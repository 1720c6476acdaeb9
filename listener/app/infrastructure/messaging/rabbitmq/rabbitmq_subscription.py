"""
RabbitMQ subscription: connection, fanout topology and the delivery stream.

Lifecycle:
  DISCONNECTED -> CONNECTING (backoff) -> CONNECTED -> CHANNEL_OPEN ->
  TOPOLOGY_DECLARED -> CONSUMING.
  Any failure before CONSUMING is raised as SubscriptionSetupError after the
  channel and connection are torn down.
  On close(): CONSUMING -> CLOSING -> cancel consumer, requeue buffered
  deliveries, close channel/connection -> CLOSED.

Broker disconnects after setup are handled by aio_pika's robust connection,
which restores the channel, topology and consumer on its own; we only log them.
"""
from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator

import aio_pika
from aio_pika.abc import AbstractIncomingMessage
from loguru import logger

from listener.app.config.settings import Settings
from listener.app.core import SERVICE_NAME
from listener.app.core.backoff import exponential_backoff
from listener.app.domain.errors import SubscriptionSetupError
from listener.app.infrastructure.messaging.rabbitmq.aio_pika_delivery import AioPikaDelivery
from listener.app.infrastructure.messaging.rabbitmq.constants import SubscriptionState

_CLOSED = object()


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class RabbitMQSubscription:
    """Subscription implementation over a durable queue bound to a fanout exchange."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._state = SubscriptionState.DISCONNECTED
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._channel: aio_pika.abc.AbstractChannel | None = None
        self._queue: aio_pika.abc.AbstractQueue | None = None
        self._consumer_tag: str | None = None
        # bounded by prefetch_count in manual mode only; no_ack ignores QoS
        self._buffer: asyncio.Queue[Any] = asyncio.Queue()
        self._closing = False

    @property
    def state(self) -> SubscriptionState:
        return self._state

    def _set_state(self, state: SubscriptionState) -> None:
        self._state = state

    def _register_callbacks(self, connection: Any) -> None:
        close_callbacks = getattr(connection, "close_callbacks", None)
        if close_callbacks is not None:
            close_callbacks.add(self._on_connection_closed)
        reconnect_callbacks = getattr(connection, "reconnect_callbacks", None)
        if reconnect_callbacks is not None:
            reconnect_callbacks.add(self._on_reconnected)

    def _on_connection_closed(self, *args: Any, **kwargs: Any) -> None:
        if self._closing:
            return
        _log("broker_disconnect_detected", queue=self._settings.queue_name)

    def _on_reconnected(self, *args: Any, **kwargs: Any) -> None:
        _log("rmq_reconnected", queue=self._settings.queue_name)

    async def _connect(self) -> None:
        self._set_state(SubscriptionState.CONNECTING)
        _log("rmq_connecting", host=self._settings.broker_host, port=self._settings.broker_port)
        attempt = 0
        async for delay in exponential_backoff(
            self._settings.initial_backoff_seconds,
            self._settings.max_backoff_seconds,
            self._settings.backoff_multiplier,
            self._settings.max_connection_attempts,
        ):
            attempt += 1
            _log("rmq_connect_attempt", attempt=attempt, delay=delay)
            try:
                self._connection = await aio_pika.connect_robust(self._settings.amqp_url)
                self._register_callbacks(self._connection)
                break
            except Exception as e:
                logger.warning("rmq connect failed: {}", e)
                if attempt >= self._settings.max_connection_attempts:
                    _log("rmq_connect_failed", attempt=attempt)
                    self._set_state(SubscriptionState.DISCONNECTED)
                    raise SubscriptionSetupError("connect", e) from e
        self._set_state(SubscriptionState.CONNECTED)
        _log("rmq_connected")

    async def _declare_topology(self) -> None:
        if self._connection is None:
            raise RuntimeError("subscription is not connected")
        self._channel = await self._connection.channel()
        self._set_state(SubscriptionState.CHANNEL_OPEN)
        await self._channel.set_qos(prefetch_count=self._settings.prefetch_count)
        exchange = await self._channel.declare_exchange(
            self._settings.exchange_name,
            aio_pika.ExchangeType.FANOUT,
            durable=True,
        )
        self._queue = await self._channel.declare_queue(self._settings.queue_name, durable=True)
        await self._queue.bind(exchange, routing_key="")
        self._set_state(SubscriptionState.TOPOLOGY_DECLARED)
        _log(
            "topology_declared",
            exchange=self._settings.exchange_name,
            queue=self._settings.queue_name,
        )

    async def open(self) -> None:
        await self._connect()
        step = "topology"
        try:
            await self._declare_topology()
            step = "consume"
            if self._queue is None:
                raise RuntimeError("queue is not declared")
            self._consumer_tag = await self._queue.consume(
                self._on_message,
                no_ack=self._settings.auto_ack,
            )
        except Exception as e:
            logger.exception("subscription setup failed during {}: {}", step, e)
            await self._close_channel_and_connection()
            self._set_state(SubscriptionState.DISCONNECTED)
            raise SubscriptionSetupError(step, e) from e
        self._set_state(SubscriptionState.CONSUMING)
        _log("consumer_registered", queue=self._settings.queue_name, consumer_tag=self._consumer_tag)

    async def _on_message(self, message: AbstractIncomingMessage) -> None:
        await self._buffer.put(AioPikaDelivery(message))

    async def deliveries(self) -> AsyncIterator[AioPikaDelivery]:
        if self._state is not SubscriptionState.CONSUMING:
            raise RuntimeError("subscription not open")
        while True:
            item = await self._buffer.get()
            if item is _CLOSED:
                return
            yield item

    async def _requeue_buffered(self) -> None:
        while not self._buffer.empty():
            item = self._buffer.get_nowait()
            if item is _CLOSED or self._settings.auto_ack:
                continue
            try:
                await item.nack(requeue=True)
            except Exception as e:
                logger.warning("requeue of buffered delivery failed: {}", e)

    async def _close_channel_and_connection(self) -> None:
        if self._queue is not None and self._consumer_tag is not None:
            try:
                await self._queue.cancel(self._consumer_tag)
            except Exception as e:
                logger.warning("consumer cancel failed (continuing to close channel): {}", e)
        self._queue = None
        self._consumer_tag = None
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

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        self._set_state(SubscriptionState.CLOSING)
        _log("subscription_shutdown", queue=self._settings.queue_name)
        if self._queue is not None and self._consumer_tag is not None:
            try:
                await self._queue.cancel(self._consumer_tag)
            except Exception as e:
                logger.warning("consumer cancel failed: {}", e)
            self._consumer_tag = None
        await self._requeue_buffered()
        self._buffer.put_nowait(_CLOSED)
        await self._close_channel_and_connection()
        self._set_state(SubscriptionState.CLOSED)
