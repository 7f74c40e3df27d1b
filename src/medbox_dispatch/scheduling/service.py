"""PlanSchedulerService — one tick of the due-plan state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..domain.history import DispenseOrigin
from ..domain.plan import PlanStatus
from ..domain.recurrence import next_occurrence
from ..primitives.exceptions import ReschedulingImpossibleError

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import tzinfo

    from ..dispensing.orchestrator import DispenseOrchestrator
    from ..domain.plan import DispensePlan
    from ..ports.repositories import IPlanRepository

logger = logging.getLogger("medbox.scheduling")


@dataclass
class TickReport:
    """Where each due plan ended up after one tick."""

    due: int = 0
    completed: list[str] = field(default_factory=list)
    rescheduled: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)

    @property
    def dispatched(self) -> int:
        """Plans whose dispense was acknowledged by the device."""
        return len(self.completed) + len(self.rescheduled) + len(self.unresolved)


class PlanSchedulerService:
    """
    Materializes due plans into orchestrator calls.

    Plans are processed strictly one after another: the device accepts one
    command at a time. A failure is confined to its plan, which is marked
    ``ERROR``; the remaining due plans of the tick still run.
    """

    def __init__(
        self,
        plans: IPlanRepository,
        orchestrator: DispenseOrchestrator,
        *,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._plans = plans
        self._orchestrator = orchestrator
        self._tz = tz
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def process_due_plans(self, now: datetime | None = None) -> TickReport:
        """
        Dispatch every PENDING plan whose ``scheduled_at`` has passed.

        Returns:
            A :class:`TickReport` listing the outcome of each due plan.
        """
        now = now or self._clock()
        logger.debug("Checking for due plans at %s", now.isoformat())
        due = await self._plans.find_due(now)
        report = TickReport(due=len(due))
        if not due:
            return report

        logger.info("Found %d plan(s) to process", len(due))
        for plan in due:
            await self._process_plan(plan, now, report)
        return report

    async def _process_plan(
        self, plan: DispensePlan, now: datetime, report: TickReport
    ) -> None:
        try:
            await self._plans.update(plan.id, status=PlanStatus.DISPENSING)
            logger.info("Plan %s set to DISPENSING", plan.id)

            await self._orchestrator.execute(plan.items, DispenseOrigin.SCHEDULED)

            if plan.is_recurring:
                next_at = self._next_occurrence(plan, now)
                await self._plans.update(
                    plan.id,
                    scheduled_at=next_at,
                    last_dispensed_at=now,
                    status=PlanStatus.PENDING,
                )
                report.rescheduled.append(plan.id)
                logger.info(
                    "Rescheduled recurring plan %s to %s", plan.id, next_at.isoformat()
                )
            else:
                await self._plans.update(
                    plan.id, status=PlanStatus.COMPLETED, dispensed_at=now
                )
                report.completed.append(plan.id)
                logger.info("Marked one-shot plan %s as COMPLETED", plan.id)
        except ReschedulingImpossibleError as e:
            report.unresolved.append(plan.id)
            logger.warning(
                "Could not reschedule recurring plan %s: %s", plan.id, e.reason
            )
        except Exception:
            logger.exception("Error processing plan %s", plan.id)
            await self._mark_failed(plan.id, report)

    def _next_occurrence(self, plan: DispensePlan, now: datetime) -> datetime:
        if not plan.time_of_day:
            raise ReschedulingImpossibleError("timeOfDay is missing", plan.id)
        try:
            return next_occurrence(
                plan.time_of_day, plan.recurring_days, after=now, tz=self._tz
            )
        except ReschedulingImpossibleError as e:
            raise ReschedulingImpossibleError(e.reason, plan.id) from e

    async def _mark_failed(self, plan_id: str, report: TickReport) -> None:
        report.failed.append(plan_id)
        try:
            await self._plans.update(plan_id, status=PlanStatus.ERROR)
        except Exception:
            logger.exception("Could not mark plan %s as ERROR", plan_id)
