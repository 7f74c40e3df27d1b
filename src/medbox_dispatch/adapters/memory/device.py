"""SimulatedDevice — answers dispense commands on an InMemoryBroker."""

from __future__ import annotations

import json
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any

from ...messaging.envelope import CORRELATION_TOKEN_KEY

if TYPE_CHECKING:
    from ...messaging.envelope import DeviceChannels
    from .broker import InMemoryBroker


class DeviceMode(str, Enum):
    ACK = "ACK"
    SILENT = "SILENT"
    FOREIGN_TOKEN = "FOREIGN_TOKEN"


class SimulatedDevice:
    """Firmware stand-in: acks each dispense command on the ack topic.

    ``mode`` controls the reply: echo the command's correlation token
    (``ACK``), stay silent (``SILENT``) or answer with a token that belongs to
    nobody (``FOREIGN_TOKEN``).
    """

    def __init__(
        self,
        broker: InMemoryBroker,
        channels: DeviceChannels,
        *,
        mode: DeviceMode = DeviceMode.ACK,
        ack_content: dict[str, Any] | None = None,
    ) -> None:
        self._broker = broker
        self._channels = channels
        self.mode = mode
        self.ack_content = (
            ack_content if ack_content is not None else {"dispensed": True}
        )
        self.received: list[dict[str, Any]] = []
        self.waiters_at_command: list[int] = []
        broker.observe_publishes(self._on_publish)

    def _on_publish(self, topic: str, payload: bytes) -> None:
        if topic != self._channels.dispense_topic:
            return
        body = json.loads(payload.decode("utf-8"))
        self.received.append(body)
        self.waiters_at_command.append(
            self._broker.handler_count(self._channels.ack_topic)
        )
        if self.mode is DeviceMode.SILENT:
            return
        token = body.get(CORRELATION_TOKEN_KEY)
        if self.mode is DeviceMode.FOREIGN_TOKEN:
            token = f"foreign-{uuid.uuid4().hex}"
        ack = {CORRELATION_TOKEN_KEY: token, **self.ack_content}
        self._broker.deliver_soon(
            self._channels.ack_topic, json.dumps(ack).encode("utf-8")
        )
