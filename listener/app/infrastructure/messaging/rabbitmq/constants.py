"""RabbitMQ adapter lifecycle states."""
from enum import Enum


class SubscriptionState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    CHANNEL_OPEN = "CHANNEL_OPEN"
    TOPOLOGY_DECLARED = "TOPOLOGY_DECLARED"
    CONSUMING = "CONSUMING"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


class PublisherState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    READY = "READY"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"
