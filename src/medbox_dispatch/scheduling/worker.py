"""PlanSchedulerWorker — cron-driven, non-overlapping scheduler ticks."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from croniter import croniter

from ..ports.background_worker import IBackgroundWorker

if TYPE_CHECKING:
    from datetime import tzinfo

    from .service import PlanSchedulerService, TickReport

logger = logging.getLogger("medbox.scheduling")

EVERY_MINUTE = "* * * * *"


class PlanSchedulerWorker(IBackgroundWorker):
    """Reactive worker that runs one scheduler tick per cron fire.

    Uses trigger + cron fallback. Call :meth:`trigger` to tick immediately
    (e.g. when a plan is created); otherwise ticks on every fire of
    ``schedule``. Ticks run inside a single task, so they never overlap:
    fires that elapse while a tick is still running are skipped.

    Implements ``IBackgroundWorker`` (``start`` / ``stop``).
    """

    def __init__(
        self,
        service: PlanSchedulerService,
        schedule: str = EVERY_MINUTE,
        *,
        tz: tzinfo = timezone.utc,
    ) -> None:
        if not croniter.is_valid(schedule):
            raise ValueError(f"Invalid cron expression: {schedule!r}")
        self._service = service
        self._schedule = schedule
        self._tz = tz
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._trigger = asyncio.Event()

    def trigger(self) -> None:
        """Wake the worker immediately."""
        self._trigger.set()

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("PlanSchedulerWorker started (schedule=%r)", self._schedule)

    async def stop(self) -> None:
        self._running = False
        self._trigger.set()
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._task, timeout=5.0)
            self._task = None
        logger.info("PlanSchedulerWorker stopped")

    async def run_once(self) -> TickReport:
        """Execute a single tick (useful in tests)."""
        return await self._tick()

    def seconds_until_next_fire(self, now: datetime | None = None) -> float:
        now = (now or datetime.now(timezone.utc)).astimezone(self._tz)
        next_fire = croniter(self._schedule, now).get_next(datetime)
        return max(0.0, (next_fire - now).total_seconds())

    async def _run_loop(self) -> None:
        while self._running:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(
                    self._trigger.wait(), timeout=self.seconds_until_next_fire()
                )
            self._trigger.clear()
            if not self._running:
                break
            try:
                await self._tick()
            except Exception:
                logger.exception("PlanSchedulerWorker error")

    async def _tick(self) -> TickReport:
        report = await self._service.process_due_plans()
        if report.due > 0:
            logger.info(
                "PlanSchedulerWorker: %d due, %d completed, %d rescheduled, "
                "%d failed, %d unresolved",
                report.due,
                len(report.completed),
                len(report.rescheduled),
                len(report.failed),
                len(report.unresolved),
            )
        return report
