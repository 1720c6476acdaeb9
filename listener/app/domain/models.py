"""Domain models."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

PayloadT = TypeVar("PayloadT")


@dataclass(frozen=True)
class Event(Generic[PayloadT]):
    """Application event envelope: a type name plus an opaque payload."""

    name: str
    payload: PayloadT

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise TypeError("event.name must be a non-empty str")


# Structured JSON payload (dicts, lists, scalars).
JsonEvent = Event[Any]
RawEvent = Event[bytes]


class Verdict(str, Enum):
    RETRYABLE = "RETRYABLE"
    NOT_RETRYABLE = "NOT_RETRYABLE"

    @property
    def retryable(self) -> bool:
        return self is Verdict.RETRYABLE


class Disposition(str, Enum):
    """How a delivery was settled."""

    ACK = "ACK"
    REQUEUE = "REQUEUE"
    DISCARD = "DISCARD"
    # auto-ack mode: the broker settled the delivery on hand-off
    AUTO = "AUTO"
