"""Listener error hierarchy."""
from __future__ import annotations


class ListenerError(Exception):
    """Base for every error raised by the listener itself."""


class EncodeError(ListenerError):
    """Raised when an event payload cannot be serialized."""


class DecodeError(ListenerError):
    """Raised when a delivery body is not a well-formed event envelope."""


class HandlerError(ListenerError):
    """Base for application failures raised while dispatching an event.

    Handlers may raise any exception; the verdict always comes from the
    error text, so these carry the wording the classifier recognises.
    """


class UnhandledEventError(HandlerError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unhandled event type: {name}")
        self.name = name


class PayloadTypeError(HandlerError):
    def __init__(self, name: str, schema: str, detail: str) -> None:
        super().__init__(f"event data is not of type {schema} for event {name}: {detail}")
        self.name = name
        self.schema = schema


class SubscriptionSetupError(ListenerError):
    """Fatal failure while establishing the subscription (connect, topology, consume)."""

    def __init__(self, step: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"subscription setup failed during {step}{detail}")
        self.step = step
