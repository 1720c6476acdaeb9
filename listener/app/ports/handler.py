"""Port: application callback invoked once per decoded event."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Union

from listener.app.domain.models import Event

# Failure is signalled by raising; a coroutine function or a plain function both work.
EventHandler = Callable[[Event[Any]], Union[Awaitable[None], None]]
