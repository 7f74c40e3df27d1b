"""IExecutionLedger — durable set of already-executed command ids."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IExecutionLedger(Protocol):
    """Deduplicates ad-hoc commands across process restarts."""

    async def is_executed(self, command_id: str) -> bool:
        """Return True if *command_id* has already been dispensed."""
        ...

    async def mark_executed(self, command_id: str) -> None:
        """Record that *command_id* has been dispensed."""
        ...
