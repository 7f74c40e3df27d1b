"""InMemoryBroker — IBrokerConnection fake with inspection helpers for tests."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from paho.mqtt.client import topic_matches_sub

from ...messaging.exceptions import (
    NotConnectedError,
    PublishFailedError,
    SubscriptionFailedError,
)
from ...ports.broker import IBrokerConnection

if TYPE_CHECKING:
    from collections.abc import Callable


class InMemoryBroker(IBrokerConnection):
    """Single-process broker: publish records the message and notifies
    observers; :meth:`deliver` routes an inbound message to handlers whose
    filter matches, provided some active subscription covers the topic.

    ``publish_error`` / ``subscribe_error`` make the next operations fail,
    which is how tests simulate a transport that rejects a publish.
    """

    def __init__(self, *, connected: bool = True) -> None:
        self._connected = connected
        self._handlers: dict[str, list[Callable[[str, bytes], None]]] = {}
        self._subscriptions: dict[str, int] = {}
        self._published: list[tuple[str, bytes]] = []
        self._observers: list[Callable[[str, bytes], None]] = []
        self.publish_error: str | None = None
        self.subscribe_error: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self._connected = True

    async def close(self) -> None:
        self._connected = False

    async def health_check(self) -> bool:
        return self._connected

    async def subscribe(self, topic: str, qos: int = 1) -> None:
        self._require_connected()
        if self.subscribe_error is not None:
            raise SubscriptionFailedError(topic, self.subscribe_error)
        self._subscriptions[topic] = qos

    async def unsubscribe(self, topic: str) -> None:
        self._require_connected()
        self._subscriptions.pop(topic, None)

    async def publish(
        self, topic: str, payload: bytes, qos: int = 1  # noqa: ARG002
    ) -> None:
        self._require_connected()
        if self.publish_error is not None:
            raise PublishFailedError(topic, self.publish_error)
        self._published.append((topic, payload))
        for observer in list(self._observers):
            observer(topic, payload)

    def add_message_handler(
        self, topic_filter: str, handler: Callable[[str, bytes], None]
    ) -> None:
        self._handlers.setdefault(topic_filter, []).append(handler)

    def remove_message_handler(
        self, topic_filter: str, handler: Callable[[str, bytes], None]
    ) -> None:
        handlers = self._handlers.get(topic_filter, [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self._handlers.pop(topic_filter, None)

    async def subscribe_persistent(
        self,
        topic_filter: str,
        handler: Callable[[str, bytes], None],
        qos: int = 1,
    ) -> None:
        self.add_message_handler(topic_filter, handler)
        if self._connected:
            await self.subscribe(topic_filter, qos=qos)
        else:
            self._subscriptions[topic_filter] = qos

    # ── Inbound simulation ───────────────────────────────────────

    def deliver(self, topic: str, payload: bytes) -> int:
        """Deliver an inbound message now; returns the number of handlers hit."""
        if not any(topic_matches_sub(sub, topic) for sub in self._subscriptions):
            return 0
        hits = 0
        for topic_filter, handlers in list(self._handlers.items()):
            if topic_matches_sub(topic_filter, topic):
                for handler in list(handlers):
                    handler(topic, payload)
                    hits += 1
        return hits

    def deliver_soon(self, topic: str, payload: bytes) -> None:
        """Deliver on the next loop iteration, like a network round trip."""
        asyncio.get_running_loop().call_soon(self.deliver, topic, payload)

    def observe_publishes(self, observer: Callable[[str, bytes], None]) -> None:
        self._observers.append(observer)

    def set_connected(self, connected: bool) -> None:
        self._connected = connected

    # ── Test helpers ─────────────────────────────────────────────

    def get_published(self, topic: str | None = None) -> list[tuple[str, bytes]]:
        """Return all (topic, payload) published so far, optionally filtered."""
        if topic is None:
            return list(self._published)
        return [(t, p) for t, p in self._published if t == topic]

    @property
    def subscriptions(self) -> dict[str, int]:
        return dict(self._subscriptions)

    def handler_count(self, topic_filter: str) -> int:
        return len(self._handlers.get(topic_filter, []))

    def _require_connected(self) -> None:
        if not self._connected:
            raise NotConnectedError("In-memory broker not connected.")
