"""Magazine — a physical pill compartment of the device."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Magazine(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    type: str
    percentage: int = Field(ge=0, le=100)
    color: str


DEFAULT_MAGAZINES: tuple[Magazine, ...] = (
    Magazine(
        id=1,
        name="Morning Mix",
        type="Multivitamin",
        percentage=60,
        color="bg-emerald-500",
    ),
    Magazine(
        id=2,
        name="Pain Relief",
        type="Ibuprofen",
        percentage=20,
        color="bg-amber-500",
    ),
)
