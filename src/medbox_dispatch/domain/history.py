"""HistoryRecord — append-only audit entry for one dispense attempt."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .items import DispenseItem


class DispenseOutcome(str, Enum):
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class DispenseOrigin(str, Enum):
    """Which entry point requested the dispense (stored as UI labels)."""

    MANUAL = "Manual Dispense"
    SCHEDULED = "Scheduled Dispense"


class HistoryRecord(BaseModel):
    """Immutable record of one orchestrator invocation.

    Stored with the history page's field names: ``amounts``, ``status`` and
    ``type``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    items: list[DispenseItem] = Field(alias="amounts")
    outcome: DispenseOutcome = Field(alias="status")
    origin: DispenseOrigin = Field(alias="type")
    correlation_token: str | None = None
    ack: dict[str, Any] | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is DispenseOutcome.COMPLETED
