from __future__ import annotations

import pytest
from pydantic import BaseModel

from listener.app.application.consumption_loop import ConsumptionLoop
from listener.app.application.router import EventRouter
from listener.app.domain.codec import JsonEventCodec
from listener.app.domain.errors import PayloadTypeError, UnhandledEventError
from listener.app.domain.models import Event
from tests.conftest import FakeDelivery


class OrderCreated(BaseModel):
    id: int
    total: float


@pytest.mark.asyncio
async def test_dispatch_validates_payload_into_schema():
    router = EventRouter()
    received: list[Event] = []

    @router.on("order.created", schema=OrderCreated)
    async def on_order(event: Event) -> None:
        received.append(event)

    await router(Event(name="order.created", payload={"id": "12", "total": 9.5}))

    assert received == [Event(name="order.created", payload=OrderCreated(id=12, total=9.5))]


@pytest.mark.asyncio
async def test_dispatch_without_schema_passes_raw_payload():
    router = EventRouter()
    received: list[Event] = []
    router.add("ping", received.append)

    await router(Event(name="ping", payload=[1, 2]))

    assert received[0].payload == [1, 2]


@pytest.mark.asyncio
async def test_unknown_event_raises_unhandled():
    router = EventRouter()

    with pytest.raises(UnhandledEventError, match="unhandled event type: nope"):
        await router(Event(name="nope", payload=None))


@pytest.mark.asyncio
async def test_payload_schema_mismatch_raises_payload_type_error():
    router = EventRouter()
    router.add("order.created", lambda event: None, schema=OrderCreated)

    with pytest.raises(PayloadTypeError, match="event data is not of type OrderCreated"):
        await router(Event(name="order.created", payload={"id": "abc"}))


def test_duplicate_registration_rejected():
    router = EventRouter()
    router.add("a", lambda event: None)

    with pytest.raises(ValueError):
        router.add("a", lambda event: None)
    with pytest.raises(ValueError):
        router.add("", lambda event: None)
    assert router.event_names == ["a"]


@pytest.mark.asyncio
async def test_router_errors_settle_by_text_through_loop():
    router = EventRouter()
    router.add("order.created", lambda event: None, schema=OrderCreated)
    loop = ConsumptionLoop(JsonEventCodec())

    unknown = FakeDelivery(b'{"event":"order.shipped","data":{}}')
    timed_out = FakeDelivery(b'{"event":"order.timeout","data":{}}')
    bad_payload = FakeDelivery(b'{"event":"order.created","data":{"id":"x"}}')
    good = FakeDelivery(b'{"event":"order.created","data":{"id":1,"total":2}}')
    for delivery in (unknown, timed_out, bad_payload, good):
        await loop.process(delivery, router)

    assert unknown.calls == ["reject_discard"]
    assert timed_out.calls == ["reject_requeue"]
    assert bad_payload.calls == ["reject_discard"]
    assert good.calls == ["ack"]
