"""InMemoryCommandStore — ad-hoc command repository and "child added" feed."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from ...ports.command_feed import ICommandFeed
from ...ports.repositories import ICommandRepository

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ...domain.command import AdHocCommand


class InMemoryCommandStore(ICommandRepository, ICommandFeed):
    """Dict-backed command collection with realtime insert notifications.

    Every open :meth:`stream` first replays the commands present when it
    opened, then yields each newly added command.
    """

    def __init__(self) -> None:
        self._commands: dict[str, AdHocCommand] = {}
        self._subscribers: list[asyncio.Queue[AdHocCommand]] = []

    async def add(self, command: AdHocCommand) -> str:
        self._commands[command.id] = command
        for queue in self._subscribers:
            queue.put_nowait(command)
        return command.id

    async def list_pending(self) -> list[AdHocCommand]:
        return sorted(self._commands.values(), key=lambda c: c.created_at)

    async def delete(self, command_id: str) -> None:
        self._commands.pop(command_id, None)

    async def stream(self) -> AsyncIterator[AdHocCommand]:
        queue: asyncio.Queue[AdHocCommand] = asyncio.Queue()
        # subscribing and listing happen without yielding to the loop, so no
        # insert can reach both the listing and the queue
        self._subscribers.append(queue)
        try:
            for command in await self.list_pending():
                yield command
            while True:
                yield await queue.get()
        finally:
            self._subscribers.remove(queue)

    # ── Test helpers ─────────────────────────────────────────────

    def __contains__(self, command_id: object) -> bool:
        return command_id in self._commands

    def __len__(self) -> int:
        return len(self._commands)
