"""Device messaging — broker connection, wire codec and the ack protocol."""

from __future__ import annotations

from .envelope import AckMessage, DeviceChannels
from .exceptions import (
    AckTimeoutError,
    BrokerConnectionError,
    MessagingError,
    MessagingSerializationError,
    NotConnectedError,
    PublishFailedError,
    SubscriptionFailedError,
)
from .protocol import DEFAULT_ACK_TIMEOUT, AckExchange, ProtocolClient

__all__ = [
    "DEFAULT_ACK_TIMEOUT",
    "AckExchange",
    "AckMessage",
    "AckTimeoutError",
    "BrokerConnectionError",
    "DeviceChannels",
    "MessagingError",
    "MessagingSerializationError",
    "NotConnectedError",
    "ProtocolClient",
    "PublishFailedError",
    "SubscriptionFailedError",
]
