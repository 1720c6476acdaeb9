"""Port: a subscription over a named queue. Implementations live in infrastructure."""
from __future__ import annotations

from typing import AsyncIterator, Protocol

from listener.app.ports.delivery import Delivery


class Subscription(Protocol):
    async def open(self) -> None:
        """Connect and provision topology; raise SubscriptionSetupError on failure."""
        ...

    def deliveries(self) -> AsyncIterator[Delivery]:
        """Yield deliveries in broker order until the subscription is closed."""
        ...

    async def close(self) -> None: ...
