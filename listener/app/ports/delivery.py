"""Port: one unit of work pulled from a subscription. Broker adapters implement it."""
from __future__ import annotations

from typing import Protocol


class Delivery(Protocol):
    """Transport-agnostic delivery.

    ack(), nack(requeue=True) and nack(requeue=False) are terminal: at most one
    of them may be called per delivery.
    """

    @property
    def body(self) -> bytes: ...

    async def ack(self) -> None: ...

    async def nack(self, *, requeue: bool = True) -> None: ...
