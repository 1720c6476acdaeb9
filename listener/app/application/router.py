"""Event router: binds each event name to a handler and an optional payload schema.

The router is itself an EventHandler, so it can be handed straight to
ConsumptionLoop.run(). With a schema registered the raw payload is validated
into that pydantic model before the handler sees it; handlers receive an
Event whose payload is the model instance.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from pydantic import BaseModel, ValidationError

from listener.app.domain.errors import PayloadTypeError, UnhandledEventError
from listener.app.domain.models import Event

ModelT = TypeVar("ModelT", bound=BaseModel)

RouteHandler = Callable[[Event[Any]], Union[Awaitable[None], None]]


@dataclass(frozen=True)
class Route(Generic[ModelT]):
    name: str
    handler: RouteHandler
    schema: type[ModelT] | None = None

    def bind(self, event: Event[Any]) -> Event[Any]:
        if self.schema is None:
            return event
        try:
            payload = self.schema.model_validate(event.payload)
        except ValidationError as exc:
            raise PayloadTypeError(
                event.name, self.schema.__name__, f"{exc.error_count()} validation error(s)"
            ) from exc
        return Event(name=event.name, payload=payload)


class EventRouter:
    def __init__(self) -> None:
        self._routes: dict[str, Route[Any]] = {}

    def add(
        self,
        name: str,
        handler: RouteHandler,
        *,
        schema: type[BaseModel] | None = None,
    ) -> None:
        if not name:
            raise ValueError("event name must be non-empty")
        if name in self._routes:
            raise ValueError(f"handler already registered for event: {name}")
        self._routes[name] = Route(name=name, handler=handler, schema=schema)

    def on(
        self, name: str, *, schema: type[BaseModel] | None = None
    ) -> Callable[[RouteHandler], RouteHandler]:
        """Decorator form of add()."""

        def register(handler: RouteHandler) -> RouteHandler:
            self.add(name, handler, schema=schema)
            return handler

        return register

    @property
    def event_names(self) -> list[str]:
        return sorted(self._routes)

    async def __call__(self, event: Event[Any]) -> None:
        route = self._routes.get(event.name)
        if route is None:
            raise UnhandledEventError(event.name)
        result = route.handler(route.bind(event))
        if inspect.isawaitable(result):
            await result
