"""Handler loading for the listener entrypoint."""
from __future__ import annotations

import importlib
from typing import Any

from loguru import logger

from listener.app.core import SERVICE_NAME
from listener.app.domain.models import Event
from listener.app.ports.handler import EventHandler


async def log_event(event: Event[Any]) -> None:
    """Default handler: log the event and succeed."""
    logger.bind(service_name=SERVICE_NAME, event="event_handled", event_name=event.name).info(
        "{}", event.payload
    )


def load_handler(path: str) -> EventHandler:
    """Resolve a "package.module:attribute" reference to a callable."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"handler path must look like 'package.module:callable', got {path!r}")
    module = importlib.import_module(module_name)
    handler = getattr(module, attr, None)
    if not callable(handler):
        raise ValueError(f"handler {path!r} is not callable")
    return handler
