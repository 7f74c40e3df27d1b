"""DispenseItem — one (magazine, amount) line of a dispense request."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DispenseItem(BaseModel):
    """Immutable dispense line shared by plans, ad-hoc commands and history.

    Serialized with camelCase keys (``magazineId``, ``magazineName``,
    ``amount``), the shape the planning UI stores and the device reads.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    magazine_id: int
    magazine_name: str = ""
    amount: int = Field(default=1, ge=1)
