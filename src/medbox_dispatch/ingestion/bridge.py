"""IngestionBridge — turns ad-hoc command records into dispenses."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from ..domain.history import DispenseOrigin
from ..ports.background_worker import IBackgroundWorker
from ..primitives.exceptions import PersistenceError

if TYPE_CHECKING:
    from ..dispensing.orchestrator import DispenseOrchestrator
    from ..domain.command import AdHocCommand
    from ..ports.command_feed import ICommandFeed
    from ..ports.idempotency import IExecutionLedger
    from ..ports.repositories import ICommandRepository

logger = logging.getLogger("medbox.ingestion")


class IngestionBridge(IBackgroundWorker):
    """
    Consumes the ad-hoc command feed one record at a time.

    Each record is dispensed with origin ``MANUAL`` and deleted only after
    the device acknowledged it. A failed dispense leaves the record in place
    (the orchestrator has already written the ERROR history entry); it is
    retried the next time the feed is opened.

    Delivery is at-least-once: a crash between the acknowledgment and the
    delete replays the record on restart. Pass an :class:`IExecutionLedger`
    to skip records that were already dispensed. A record whose delete
    fails after the dispense is remembered for the life of the bridge and
    is never dispensed again by this process; its delete is retried when
    the feed replays it.

    Implements ``IBackgroundWorker`` (``start`` / ``stop``).
    """

    def __init__(
        self,
        feed: ICommandFeed,
        commands: ICommandRepository,
        orchestrator: DispenseOrchestrator,
        *,
        ledger: IExecutionLedger | None = None,
        reopen_delay: float = 1.0,
    ) -> None:
        self._feed = feed
        self._commands = commands
        self._orchestrator = orchestrator
        self._ledger = ledger
        self._reopen_delay = reopen_delay
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._awaiting_delete: set[str] = set()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("IngestionBridge started")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._task, timeout=5.0)
            self._task = None
        logger.info("IngestionBridge stopped")

    async def run(self) -> None:
        """Consume the feed until cancelled. Records are handled sequentially."""
        async for command in self._feed.stream():
            await self.handle(command)

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run()
            except Exception:
                logger.exception("Command feed failed")
            if not self._running:
                break
            logger.warning("Reopening command feed in %.1fs", self._reopen_delay)
            await asyncio.sleep(self._reopen_delay)

    async def handle(self, command: AdHocCommand) -> bool:
        """Dispense one command record.

        Returns:
            True if the record was dispensed (its delete may still be
            pending), False if it was left in place for a later attempt.
        """
        logger.info(
            "Received dispense command %s (%d item(s))", command.id, len(command.items)
        )
        if command.id in self._awaiting_delete:
            logger.warning(
                "Command %s was already dispensed; retrying its delete", command.id
            )
            await self._retire(command.id)
            return True

        if self._ledger is not None and await self._ledger.is_executed(command.id):
            logger.warning(
                "Command %s was already dispensed; deleting without re-dispensing",
                command.id,
            )
            await self._retire(command.id)
            return True

        try:
            await self._orchestrator.execute(command.items, DispenseOrigin.MANUAL)
        except Exception:
            logger.exception(
                "Dispense for command %s failed; record left for retry", command.id
            )
            return False

        self._awaiting_delete.add(command.id)
        if self._ledger is not None:
            try:
                await self._ledger.mark_executed(command.id)
            except PersistenceError:
                logger.exception("Could not mark command %s as executed", command.id)
        if await self._retire(command.id):
            logger.info("Command %s dispensed and removed", command.id)
        return True

    async def _retire(self, command_id: str) -> bool:
        try:
            await self._commands.delete(command_id)
        except PersistenceError:
            logger.exception(
                "Could not delete dispensed command %s; it will not be dispensed "
                "again by this process",
                command_id,
            )
            return False
        self._awaiting_delete.discard(command_id)
        return True
