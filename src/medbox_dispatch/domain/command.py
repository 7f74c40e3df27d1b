"""AdHocCommand — an immediate, user-triggered dispense request."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .items import DispenseItem


class AdHocCommand(BaseModel):
    """Externally created command record, consumed once then deleted.

    Items are stored under ``amounts``, the key the dashboard writes.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    items: list[DispenseItem] = Field(alias="amounts", min_length=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    requester: str | None = None
