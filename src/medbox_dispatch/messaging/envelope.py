"""Wire-level models: device channels and acknowledgments."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CORRELATION_TOKEN_KEY = "correlationToken"


class DeviceChannels(BaseModel):
    """Topic layout for one device: ``{topic_root}/{device_id}/...``."""

    model_config = ConfigDict(frozen=True)

    topic_root: str = "medbox"
    device_id: str = "01"
    dispense_command: str = "dispense"
    ack_suffix: str = "dispensed"
    events_suffix: str = "events"

    @property
    def device_topic(self) -> str:
        return f"{self.topic_root}/{self.device_id}"

    @property
    def dispense_topic(self) -> str:
        return f"{self.device_topic}/{self.dispense_command}"

    @property
    def ack_topic(self) -> str:
        return f"{self.device_topic}/{self.ack_suffix}"

    @property
    def events_filter(self) -> str:
        """Wildcard filter for device events of every box under the root."""
        return f"{self.topic_root}/+/{self.events_suffix}"


class AckMessage(BaseModel):
    """A device acknowledgment matched to one outstanding command."""

    model_config = ConfigDict(frozen=True)

    correlation_token: str
    topic: str
    content: dict[str, Any] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
