"""DispensePlan — a stored request to dispense items once or weekly."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Annotated

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

from ..primitives.exceptions import PlanValidationError, ReschedulingImpossibleError
from .items import DispenseItem
from .recurrence import TIME_OF_DAY_PATTERN, first_occurrence

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import tzinfo


class PlanKind(str, Enum):
    """How often a plan fires. ``ONE_SHOT`` is stored as ``"ONCE"``."""

    ONE_SHOT = "ONCE"
    RECURRING = "RECURRING"


class PlanStatus(str, Enum):
    """Lifecycle states for a dispense plan.

    Transitions driven by the scheduler::

        PENDING     → DISPENSING (due, before the device is contacted)
        DISPENSING  → COMPLETED  (ONE_SHOT acknowledged)
        DISPENSING  → PENDING    (RECURRING acknowledged, scheduledAt advanced)
        DISPENSING  → ERROR      (dispense or bookkeeping failed)
    """

    PENDING = "PENDING"
    DISPENSING = "DISPENSING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


Weekday = Annotated[int, Field(ge=0, le=6)]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DispensePlan(BaseModel):
    """Persisted dispense plan.

    ``time_of_day`` and ``recurring_days`` are only meaningful for
    ``RECURRING`` plans. They are not cross-validated on load: a degenerate
    recurring plan still loads and is reported by the scheduler instead.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: PlanKind = Field(default=PlanKind.ONE_SHOT, alias="type")
    items: list[DispenseItem] = Field(min_length=1)
    scheduled_at: datetime
    status: PlanStatus = PlanStatus.PENDING
    time_of_day: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    recurring_days: frozenset[Weekday] = frozenset()
    dispensed_at: datetime | None = None
    last_dispensed_at: datetime | None = None

    @field_validator("scheduled_at", "dispensed_at", "last_dispensed_at")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        return None if value is None else _as_utc(value)

    @field_serializer("recurring_days")
    def _dump_days(self, days: frozenset[int]) -> list[int]:
        return sorted(days)

    @property
    def is_recurring(self) -> bool:
        return self.kind is PlanKind.RECURRING

    # -- planning ---------------------------------------------------------

    @classmethod
    def one_shot(
        cls,
        items: Sequence[DispenseItem],
        at: datetime,
        *,
        now: datetime | None = None,
    ) -> DispensePlan:
        """Create a ONE_SHOT plan; *at* must not lie in the past."""
        now = now or datetime.now(timezone.utc)
        at = _as_utc(at)
        if at < now:
            raise PlanValidationError("You cannot schedule a dispense in the past.")
        return cls._build(kind=PlanKind.ONE_SHOT, items=list(items), scheduled_at=at)

    @classmethod
    def recurring(
        cls,
        items: Sequence[DispenseItem],
        time_of_day: str,
        recurring_days: Iterable[int],
        *,
        now: datetime | None = None,
        tz: tzinfo = timezone.utc,
    ) -> DispensePlan:
        """Create a RECURRING plan scheduled at its first occurrence."""
        now = now or datetime.now(timezone.utc)
        days = frozenset(recurring_days)
        if not days:
            raise PlanValidationError(
                "Please select at least one day for recurrence."
            )
        try:
            scheduled_at = first_occurrence(time_of_day, days, now=now, tz=tz)
        except (ValueError, ReschedulingImpossibleError) as e:
            raise PlanValidationError(str(e)) from e
        return cls._build(
            kind=PlanKind.RECURRING,
            items=list(items),
            scheduled_at=scheduled_at,
            time_of_day=time_of_day,
            recurring_days=days,
        )

    @classmethod
    def _build(cls, **data: object) -> DispensePlan:
        if not data.get("items"):
            raise PlanValidationError("Please select at least one medication.")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise PlanValidationError(str(e)) from e
