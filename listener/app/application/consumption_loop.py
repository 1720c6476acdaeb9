from __future__ import annotations

import asyncio
import inspect
from typing import Any, Generic

from loguru import logger

from listener.app.core import SERVICE_NAME
from listener.app.domain.classifier import DEFAULT_CLASSIFIER, Classifier
from listener.app.domain.codec import EventCodec
from listener.app.domain.errors import DecodeError
from listener.app.domain.models import Disposition, Event, PayloadT, Verdict
from listener.app.ports.delivery import Delivery
from listener.app.ports.handler import EventHandler
from listener.app.ports.subscription import Subscription


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class ConsumptionLoop(Generic[PayloadT]):
    """
    Pulls deliveries one at a time, decodes, dispatches and settles each one.

    Every delivery ends on exactly one path:
      decode failure            -> nack(requeue=False)
      handler success           -> ack()
      handler failure, retry    -> nack(requeue=True)
      handler failure, no retry -> nack(requeue=False)

    With auto_ack=True the broker settled the delivery on hand-off, so the
    outcome is only logged. Handler errors never escape the loop.
    """

    def __init__(
        self,
        codec: EventCodec[PayloadT],
        classifier: Classifier = DEFAULT_CLASSIFIER,
        *,
        auto_ack: bool = False,
    ) -> None:
        self._codec = codec
        self._classifier = classifier
        self._auto_ack = auto_ack

    async def run(self, subscription: Subscription, handler: EventHandler) -> None:
        processed = 0
        async for delivery in subscription.deliveries():
            await self.process(delivery, handler)
            processed += 1
        _log("subscription_closed", processed=processed)

    async def process(self, delivery: Delivery, handler: EventHandler) -> Disposition:
        body = delivery.body
        _log("delivery_received", size=len(body))

        try:
            event = self._codec.decode(body)
        except DecodeError as exc:
            logger.warning("failed to unmarshal delivery: {}", exc)
            _log("delivery_decode_failed", error=str(exc))
            return await self._settle(delivery, Disposition.DISCARD, event_name=None)

        try:
            await _invoke(handler, event)
        except asyncio.CancelledError:
            # Shutdown mid-dispatch: give the message back to the broker.
            await self._settle(delivery, Disposition.REQUEUE, event_name=event.name)
            raise
        except Exception as exc:
            verdict = self._classifier.classify(exc)
            logger.warning("handler error for event {}: {}", event.name, exc)
            disposition = Disposition.REQUEUE if verdict is Verdict.RETRYABLE else Disposition.DISCARD
            return await self._settle(
                delivery, disposition, event_name=event.name, error=str(exc), verdict=verdict.value
            )

        return await self._settle(delivery, Disposition.ACK, event_name=event.name)

    async def _settle(
        self,
        delivery: Delivery,
        disposition: Disposition,
        *,
        event_name: str | None,
        **details: Any,
    ) -> Disposition:
        if self._auto_ack:
            _log("delivery_auto_acked", event_name=event_name, outcome=disposition.value, **details)
            return Disposition.AUTO
        try:
            if disposition is Disposition.ACK:
                await delivery.ack()
            else:
                await delivery.nack(requeue=disposition is Disposition.REQUEUE)
        except Exception as exc:
            # Unsettled deliveries are redelivered by the broker once the channel goes away.
            logger.exception("settling delivery failed: {}", exc)
            _log("delivery_settle_failed", event_name=event_name, disposition=disposition.value)
            return disposition
        _log(_SETTLED_EVENTS[disposition], event_name=event_name, **details)
        return disposition


_SETTLED_EVENTS = {
    Disposition.ACK: "delivery_acked",
    Disposition.REQUEUE: "delivery_requeued",
    Disposition.DISCARD: "delivery_discarded",
}


async def _invoke(handler: EventHandler, event: Event[Any]) -> None:
    result = handler(event)
    if inspect.isawaitable(result):
        await result
