"""Repository protocols for plans, history, ad-hoc commands and magazines."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from ..domain.command import AdHocCommand
    from ..domain.history import HistoryRecord
    from ..domain.magazine import Magazine
    from ..domain.plan import DispensePlan


@runtime_checkable
class IPlanRepository(Protocol):
    """Plan store as consumed by the scheduler.

    Only single-document atomic updates are required; plans are processed
    independently so no cross-document transaction is ever opened.
    """

    async def add(self, plan: DispensePlan) -> str: ...

    async def get(self, plan_id: str) -> DispensePlan | None: ...

    async def find_due(self, now: datetime) -> list[DispensePlan]:
        """PENDING plans with ``scheduled_at <= now``, oldest first."""
        ...

    async def update(self, plan_id: str, **changes: Any) -> None:
        """Atomically set *changes* (model field names) on one plan.

        Raises ``EntityNotFoundError`` when no plan has *plan_id*.
        """
        ...


@runtime_checkable
class IHistoryRepository(Protocol):
    """Append-only history store."""

    async def append(self, record: HistoryRecord) -> str: ...

    async def list_all(self) -> list[HistoryRecord]: ...


@runtime_checkable
class ICommandRepository(Protocol):
    """Ad-hoc command store: insert (external), list and delete by id."""

    async def add(self, command: AdHocCommand) -> str: ...

    async def list_pending(self) -> list[AdHocCommand]:
        """Unconsumed commands, oldest first."""
        ...

    async def delete(self, command_id: str) -> None: ...


@runtime_checkable
class IMagazineRepository(Protocol):
    async def count(self) -> int: ...

    async def add_many(self, magazines: list[Magazine]) -> None: ...
