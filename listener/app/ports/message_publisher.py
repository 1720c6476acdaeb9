"""Port: fire-and-forget event send. Implementations live in infrastructure."""
from __future__ import annotations

from typing import Any, Protocol

from listener.app.domain.models import Event


class MessagePublisher(Protocol):
    async def connect(self) -> None: ...

    async def send(self, exchange: str, event: Event[Any], *, routing_key: str = "") -> None: ...

    async def close(self) -> None: ...

    @property
    def ready(self) -> bool: ...
