"""In-memory fanout broker for tests and local mode.

One process only: exchanges fan out to every bound queue, deliveries are
settled exactly like broker deliveries (ack, nack with or without requeue), and
a requeued body goes to the back of its queue.
"""
from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, AsyncIterator

from listener.app.domain.codec import EventCodec
from listener.app.domain.errors import SubscriptionSetupError
from listener.app.domain.models import Disposition, Event

_CLOSED = object()


class InMemoryBroker:
    def __init__(self) -> None:
        self._bindings: dict[str, set[str]] = defaultdict(set)
        self._queues: dict[str, asyncio.Queue[Any]] = {}
        self.discarded: list[bytes] = []

    def declare_queue(self, queue: str) -> asyncio.Queue[Any]:
        return self._queues.setdefault(queue, asyncio.Queue())

    def bind(self, exchange: str, queue: str) -> None:
        self.declare_queue(queue)
        self._bindings[exchange].add(queue)

    def publish(self, exchange: str, body: bytes) -> int:
        """Fan body out to every queue bound to exchange; return how many got it."""
        queues = self._bindings.get(exchange, set())
        for name in queues:
            self._queues[name].put_nowait(body)
        return len(queues)

    def depth(self, queue: str) -> int:
        q = self._queues.get(queue)
        return 0 if q is None else q.qsize()


class InMemoryDelivery:
    def __init__(self, broker: InMemoryBroker, queue: str, body: bytes) -> None:
        self._broker = broker
        self._queue = queue
        self._body = body
        self.disposition: Disposition | None = None

    @property
    def body(self) -> bytes:
        return self._body

    def _settle(self, disposition: Disposition) -> None:
        if self.disposition is not None:
            raise RuntimeError(f"delivery already settled: {self.disposition.value}")
        self.disposition = disposition

    async def ack(self) -> None:
        self._settle(Disposition.ACK)

    async def nack(self, *, requeue: bool = True) -> None:
        self._settle(Disposition.REQUEUE if requeue else Disposition.DISCARD)
        if requeue:
            self._broker.declare_queue(self._queue).put_nowait(self._body)
        else:
            self._broker.discarded.append(self._body)


class InMemorySubscription:
    """Subscription over an in-memory queue.

    close() ends the stream after the bodies already queued at that moment;
    anything requeued afterwards stays in the broker.
    """

    def __init__(self, broker: InMemoryBroker, exchange: str, queue: str) -> None:
        self._broker = broker
        self._exchange = exchange
        self._queue_name = queue
        self._queue: asyncio.Queue[Any] | None = None

    async def open(self) -> None:
        if not self._exchange or not self._queue_name:
            raise SubscriptionSetupError("topology", ValueError("exchange and queue names are required"))
        self._broker.bind(self._exchange, self._queue_name)
        self._queue = self._broker.declare_queue(self._queue_name)

    async def deliveries(self) -> AsyncIterator[InMemoryDelivery]:
        if self._queue is None:
            raise RuntimeError("subscription not open")
        while True:
            body = await self._queue.get()
            if body is _CLOSED:
                return
            yield InMemoryDelivery(self._broker, self._queue_name, body)

    async def close(self) -> None:
        if self._queue is not None:
            self._queue.put_nowait(_CLOSED)


class InMemoryPublisher:
    def __init__(self, broker: InMemoryBroker, codec: EventCodec[Any]) -> None:
        self._broker = broker
        self._codec = codec
        self.sent: list[tuple[str, bytes]] = []

    async def connect(self) -> None:
        return

    @property
    def ready(self) -> bool:
        return True

    async def send(self, exchange: str, event: Event[Any], *, routing_key: str = "") -> None:
        body = self._codec.encode(event)
        self.sent.append((exchange, body))
        self._broker.publish(exchange, body)

    async def close(self) -> None:
        return
