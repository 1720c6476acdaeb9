"""Adapter: wrap aio_pika.IncomingMessage to implement ports.Delivery."""
from __future__ import annotations

from aio_pika.abc import AbstractIncomingMessage


class AioPikaDelivery:
    """Implements listener.app.ports.delivery.Delivery for aio_pika."""

    def __init__(self, message: AbstractIncomingMessage) -> None:
        self._message = message

    @property
    def body(self) -> bytes:
        return self._message.body

    @property
    def delivery_tag(self) -> int | None:
        return self._message.delivery_tag

    @property
    def redelivered(self) -> bool:
        return bool(self._message.redelivered)

    async def ack(self) -> None:
        await self._message.ack()

    async def nack(self, *, requeue: bool = True) -> None:
        await self._message.nack(requeue=requeue)
