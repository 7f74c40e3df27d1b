"""Messaging-specific exceptions raised by the broker connection and protocol."""

from __future__ import annotations

from ..primitives.exceptions import InfrastructureError


class MessagingError(InfrastructureError):
    """Base class for all messaging-related infrastructure errors."""


class BrokerConnectionError(MessagingError):
    """Raised when the connection to the broker cannot be established."""


class NotConnectedError(MessagingError):
    """Raised when a command is sent while no broker session is up."""


class PublishFailedError(MessagingError):
    """Raised when the transport rejects or never confirms a publish."""

    def __init__(self, topic: str, reason: str) -> None:
        self.topic = topic
        self.reason = reason
        super().__init__(f"Failed to publish to {topic}: {reason}")


class SubscriptionFailedError(MessagingError):
    """Raised when the broker refuses a subscription."""

    def __init__(self, topic: str, reason: str) -> None:
        self.topic = topic
        self.reason = reason
        super().__init__(f"Failed to subscribe to {topic}: {reason}")


class AckTimeoutError(MessagingError):
    """Raised when no matching acknowledgment arrives within the timeout."""

    def __init__(
        self, ack_channel: str, correlation_token: str, timeout: float
    ) -> None:
        self.ack_channel = ack_channel
        self.correlation_token = correlation_token
        self.timeout = timeout
        super().__init__(
            f"Acknowledgment timed out after {timeout:.1f}s "
            f"(channel={ack_channel}, token={correlation_token})"
        )


class MessagingSerializationError(MessagingError):
    """Raised when a payload cannot be encoded or decoded."""
