"""Tests for PlanSchedulerWorker — cron-driven, non-overlapping ticks."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from medbox_dispatch.domain import DispensePlan, PlanStatus
from medbox_dispatch.scheduling import (
    PlanSchedulerService,
    PlanSchedulerWorker,
    TickReport,
)


def test_invalid_cron_expression_is_rejected() -> None:
    with pytest.raises(ValueError, match="cron"):
        PlanSchedulerWorker(AsyncMock(), "every minute")


def test_seconds_until_next_fire_every_minute() -> None:
    worker = PlanSchedulerWorker(AsyncMock())
    now = datetime(2024, 1, 1, 9, 0, 30, tzinfo=timezone.utc)

    assert worker.seconds_until_next_fire(now) == 30.0


def test_seconds_until_next_fire_in_local_time_zone() -> None:
    worker = PlanSchedulerWorker(
        AsyncMock(), "0 8 * * *", tz=ZoneInfo("Europe/Berlin")
    )
    # 06:00 UTC is 07:00 in Berlin; the next 08:00 local fire is one hour away.
    now = datetime(2024, 1, 1, 6, 0, tzinfo=timezone.utc)

    assert worker.seconds_until_next_fire(now) == 3600.0


@pytest.mark.asyncio
async def test_run_once_returns_tick_report(plans, orchestrator, items, device) -> None:

    service = PlanSchedulerService(plans, orchestrator)
    worker = PlanSchedulerWorker(service)
    plan = DispensePlan(
        items=items, scheduled_at=datetime.now(timezone.utc) - timedelta(minutes=1)
    )
    await plans.add(plan)

    report = await worker.run_once()

    assert report.completed == [plan.id]
    assert (await plans.get(plan.id)).status is PlanStatus.COMPLETED


@pytest.mark.asyncio
async def test_worker_lifecycle_with_trigger(
    plans, orchestrator, items, device
) -> None:
    service = PlanSchedulerService(plans, orchestrator)
    worker = PlanSchedulerWorker(service)

    await worker.start()
    assert worker._running is True

    plan = DispensePlan(
        items=items, scheduled_at=datetime.now(timezone.utc) - timedelta(minutes=1)
    )
    await plans.add(plan)
    worker.trigger()
    await asyncio.sleep(0.05)

    await worker.stop()
    assert worker._running is False
    assert (await plans.get(plan.id)).status is PlanStatus.COMPLETED


@pytest.mark.asyncio
async def test_ticks_never_overlap() -> None:

    running = 0
    peak = 0
    ticks = 0

    async def slow_tick() -> TickReport:
        nonlocal running, peak, ticks
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.02)
        running -= 1
        ticks += 1
        return TickReport()

    service = AsyncMock()
    service.process_due_plans.side_effect = slow_tick
    worker = PlanSchedulerWorker(service)

    await worker.start()
    for _ in range(5):
        worker.trigger()
        await asyncio.sleep(0.005)
    await asyncio.sleep(0.05)
    await worker.stop()

    assert ticks >= 2
    assert peak == 1


@pytest.mark.asyncio
async def test_tick_error_does_not_stop_worker() -> None:

    service = AsyncMock()
    service.process_due_plans.side_effect = [RuntimeError("store down"), TickReport()]
    worker = PlanSchedulerWorker(service)

    await worker.start()
    worker.trigger()
    await asyncio.sleep(0.01)
    worker.trigger()
    await asyncio.sleep(0.01)
    await worker.stop()

    assert service.process_due_plans.await_count >= 2


@pytest.mark.asyncio
async def test_start_is_idempotent() -> None:

    worker = PlanSchedulerWorker(AsyncMock())

    await worker.start()
    task = worker._task
    await worker.start()

    assert worker._task is task
    await worker.stop()
