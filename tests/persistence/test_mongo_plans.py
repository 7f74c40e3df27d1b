"""Tests for MongoPlanRepository against mongomock."""

from datetime import datetime, timedelta, timezone

import pytest

from medbox_dispatch.domain import DispenseItem, DispensePlan, PlanKind, PlanStatus
from medbox_dispatch.persistence.mongo import (
    MongoPersistenceError,
    MongoPlanRepository,
)
from medbox_dispatch.primitives.exceptions import EntityNotFoundError

NOW = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def repo(mongo_connection) -> MongoPlanRepository:
    return MongoPlanRepository(mongo_connection, "plans")


@pytest.fixture
def collection(mongo_connection):
    return mongo_connection.database["plans"]


@pytest.mark.asyncio
async def test_add_and_get_round_trip(repo, items) -> None:
    plan = DispensePlan.recurring(items, "08:00", [1, 3], now=NOW)

    await repo.add(plan)
    loaded = await repo.get(plan.id)

    assert loaded == plan
    assert loaded.scheduled_at.tzinfo == timezone.utc


@pytest.mark.asyncio
async def test_get_missing_returns_none(repo) -> None:
    assert await repo.get("missing") is None


@pytest.mark.asyncio
async def test_document_uses_dashboard_field_names(repo, collection, items) -> None:
    plan = DispensePlan(items=items, scheduled_at=NOW)

    await repo.add(plan)
    doc = await collection.find_one({"_id": plan.id})

    assert doc["type"] == "ONCE"
    assert doc["status"] == "PENDING"
    assert doc["scheduledAt"] == datetime(2024, 1, 1, 9, 0)
    assert doc["items"][0]["magazineId"] == 1
    assert "id" not in doc


@pytest.mark.asyncio
async def test_find_due_returns_pending_plans_oldest_first(repo, items) -> None:
    later = DispensePlan(items=items, scheduled_at=NOW - timedelta(minutes=1))
    earlier = DispensePlan(items=items, scheduled_at=NOW - timedelta(hours=1))
    future = DispensePlan(items=items, scheduled_at=NOW + timedelta(minutes=1))
    done = DispensePlan(
        items=items,
        scheduled_at=NOW - timedelta(days=1),
        status=PlanStatus.COMPLETED,
    )
    for plan in (later, earlier, future, done):
        await repo.add(plan)

    due = await repo.find_due(NOW)

    assert [p.id for p in due] == [earlier.id, later.id]


@pytest.mark.asyncio
async def test_find_due_includes_plan_due_exactly_now(repo, items) -> None:
    plan = DispensePlan(items=items, scheduled_at=NOW)
    await repo.add(plan)

    assert [p.id for p in await repo.find_due(NOW)] == [plan.id]


@pytest.mark.asyncio
async def test_find_due_marks_malformed_documents_as_error(
    repo, collection, items
) -> None:
    await collection.insert_one(
        {
            "_id": "bad-days",
            "type": "RECURRING",
            "items": [{"magazineId": 1, "amount": 1}],
            "status": "PENDING",
            "scheduledAt": datetime(2024, 1, 1),
            "timeOfDay": "08:00",
            "recurringDays": [9],
        }
    )
    await collection.insert_one(
        {"_id": "broken", "status": "PENDING", "scheduledAt": datetime(2024, 1, 1)}
    )
    plan = DispensePlan(items=items, scheduled_at=NOW)
    await repo.add(plan)

    due = await repo.find_due(NOW)

    assert [p.id for p in due] == [plan.id]
    for doc_id in ("broken", "bad-days"):
        doc = await collection.find_one({"_id": doc_id})
        assert doc["status"] == "ERROR"
    assert [p.id for p in await repo.find_due(NOW)] == [plan.id]


@pytest.mark.asyncio
async def test_dashboard_document_loads(repo, collection) -> None:
    await collection.insert_one(
        {
            "_id": "from-ui",
            "type": "RECURRING",
            "items": [{"magazineId": 2, "magazineName": "Pain Relief", "amount": 1}],
            "scheduledAt": datetime(2024, 1, 1, 8, 0),
            "status": "PENDING",
            "timeOfDay": "08:00",
            "recurringDays": [3, 1],
        }
    )

    [plan] = await repo.find_due(NOW)

    assert plan.id == "from-ui"
    assert plan.kind is PlanKind.RECURRING
    assert plan.recurring_days == frozenset({1, 3})
    assert plan.items == [
        DispenseItem(magazine_id=2, magazine_name="Pain Relief", amount=1)
    ]


@pytest.mark.asyncio
async def test_update_sets_aliased_fields(repo, collection, items) -> None:
    plan = DispensePlan(items=items, scheduled_at=NOW)
    await repo.add(plan)
    next_at = NOW + timedelta(days=2)

    await repo.update(
        plan.id,
        status=PlanStatus.PENDING,
        scheduled_at=next_at,
        last_dispensed_at=NOW,
    )

    doc = await collection.find_one({"_id": plan.id})
    assert doc["scheduledAt"] == datetime(2024, 1, 3, 9, 0)
    assert doc["lastDispensedAt"] == datetime(2024, 1, 1, 9, 0)
    loaded = await repo.get(plan.id)
    assert loaded.scheduled_at == next_at
    assert loaded.last_dispensed_at == NOW


@pytest.mark.asyncio
async def test_update_status_is_stored_as_string(repo, collection, items) -> None:
    plan = DispensePlan(items=items, scheduled_at=NOW)
    await repo.add(plan)

    await repo.update(plan.id, status=PlanStatus.DISPENSING)

    doc = await collection.find_one({"_id": plan.id})
    assert doc["status"] == "DISPENSING"
    assert await repo.find_due(NOW) == []


@pytest.mark.asyncio
async def test_update_missing_plan_raises(repo) -> None:
    with pytest.raises(EntityNotFoundError):
        await repo.update("missing", status=PlanStatus.ERROR)


@pytest.mark.asyncio
async def test_update_unknown_field_raises(repo, items) -> None:
    plan = DispensePlan(items=items, scheduled_at=NOW)
    await repo.add(plan)

    with pytest.raises(MongoPersistenceError, match="no field"):
        await repo.update(plan.id, colour="red")
