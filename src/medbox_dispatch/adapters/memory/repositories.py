"""Dict-backed plan, history and magazine repositories for unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ...domain.plan import DispensePlan, PlanStatus
from ...ports.repositories import (
    IHistoryRepository,
    IMagazineRepository,
    IPlanRepository,
)
from ...primitives.exceptions import EntityNotFoundError

if TYPE_CHECKING:
    from datetime import datetime

    from ...domain.history import HistoryRecord
    from ...domain.magazine import Magazine


class InMemoryPlanRepository(IPlanRepository):
    """In-memory implementation of ``IPlanRepository``.

    Plans are stored as copies so callers only observe state through the
    repository, as with a real document store. Every update is also appended
    to :attr:`updates` for ordering assertions.
    """

    def __init__(self) -> None:
        self._store: dict[str, DispensePlan] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []

    async def add(self, plan: DispensePlan) -> str:
        self._store[plan.id] = plan.model_copy(deep=True)
        return plan.id

    async def get(self, plan_id: str) -> DispensePlan | None:
        plan = self._store.get(plan_id)
        return plan.model_copy(deep=True) if plan is not None else None

    async def find_due(self, now: datetime) -> list[DispensePlan]:
        due = [
            plan.model_copy(deep=True)
            for plan in self._store.values()
            if plan.status is PlanStatus.PENDING and plan.scheduled_at <= now
        ]
        due.sort(key=lambda p: p.scheduled_at)
        return due

    async def update(self, plan_id: str, **changes: Any) -> None:
        plan = self._store.get(plan_id)
        if plan is None:
            raise EntityNotFoundError("DispensePlan", plan_id)
        data = plan.model_dump()
        data.update(changes)
        self._store[plan_id] = DispensePlan.model_validate(data)
        self.updates.append((plan_id, dict(changes)))

    # ── Test helpers ─────────────────────────────────────────────

    def clear(self) -> None:
        self._store.clear()
        self.updates.clear()

    def __len__(self) -> int:
        return len(self._store)


class InMemoryHistoryRepository(IHistoryRepository):
    """Append-only list of history records."""

    def __init__(self) -> None:
        self._records: list[HistoryRecord] = []

    async def append(self, record: HistoryRecord) -> str:
        self._records.append(record)
        return record.id

    async def list_all(self) -> list[HistoryRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


class InMemoryMagazineRepository(IMagazineRepository):
    def __init__(self) -> None:
        self._store: dict[int, Magazine] = {}

    async def count(self) -> int:
        return len(self._store)

    async def add_many(self, magazines: list[Magazine]) -> None:
        for magazine in magazines:
            self._store[magazine.id] = magazine

    async def list_all(self) -> list[Magazine]:
        return list(self._store.values())
