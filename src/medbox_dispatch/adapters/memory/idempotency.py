"""InMemoryExecutionLedger — process-local IExecutionLedger for tests."""

from __future__ import annotations

from ...ports.idempotency import IExecutionLedger


class InMemoryExecutionLedger(IExecutionLedger):
    def __init__(self) -> None:
        self._executed: set[str] = set()

    async def is_executed(self, command_id: str) -> bool:
        return command_id in self._executed

    async def mark_executed(self, command_id: str) -> None:
        self._executed.add(command_id)

    def clear(self) -> None:
        self._executed.clear()
