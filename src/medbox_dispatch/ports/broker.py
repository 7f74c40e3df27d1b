"""IBrokerConnection — port for the single pub/sub broker connection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable


@runtime_checkable
class IBrokerConnection(Protocol):
    """
    Port for a topic-addressed, at-least-once pub/sub connection.

    Message handlers are plain callables invoked on the event loop with
    ``(topic, payload)`` for every inbound message matching their topic
    filter. Infrastructure packages provide concrete adapters (MQTT) and the
    in-memory broker provides a fake for tests.
    """

    @property
    def is_connected(self) -> bool:
        """True while the transport session is up."""
        ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def subscribe(self, topic: str, qos: int = 1) -> None:
        """Subscribe to *topic*; raises ``SubscriptionFailedError`` on refusal."""
        ...

    async def unsubscribe(self, topic: str) -> None: ...

    async def publish(self, topic: str, payload: bytes, qos: int = 1) -> None:
        """
        Publish *payload* to *topic*.

        Returns once the broker accepted the message (PUBACK for QoS 1).
        Raises ``NotConnectedError`` or ``PublishFailedError``.
        """
        ...

    def add_message_handler(
        self, topic_filter: str, handler: Callable[[str, bytes], None]
    ) -> None: ...

    def remove_message_handler(
        self, topic_filter: str, handler: Callable[[str, bytes], None]
    ) -> None: ...

    async def subscribe_persistent(
        self,
        topic_filter: str,
        handler: Callable[[str, bytes], None],
        qos: int = 1,
    ) -> None:
        """Register *handler* and keep *topic_filter* subscribed across reconnects."""
        ...

    async def health_check(self) -> bool: ...
