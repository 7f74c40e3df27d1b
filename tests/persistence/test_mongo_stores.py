"""Tests for history, magazine and execution-ledger collections."""

from datetime import datetime, timezone

import pytest

from medbox_dispatch.domain import (
    DEFAULT_MAGAZINES,
    DispenseOrigin,
    DispenseOutcome,
    HistoryRecord,
    Magazine,
)
from medbox_dispatch.persistence.mongo import (
    MongoExecutionLedger,
    MongoHistoryRepository,
    MongoMagazineRepository,
)
from medbox_dispatch.seeding import seed_magazines


@pytest.mark.asyncio
async def test_history_append_and_list(mongo_connection, items) -> None:
    repo = MongoHistoryRepository(mongo_connection, "history")
    first = HistoryRecord(
        timestamp=datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc),
        items=items,
        outcome=DispenseOutcome.COMPLETED,
        origin=DispenseOrigin.SCHEDULED,
        correlation_token="a",
        ack={"dispensed": True},
    )
    second = HistoryRecord(
        timestamp=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        items=items,
        outcome=DispenseOutcome.ERROR,
        origin=DispenseOrigin.MANUAL,
        correlation_token="b",
        error="AckTimeoutError: timed out",
    )
    await repo.append(second)
    await repo.append(first)

    assert await repo.list_all() == [first, second]


@pytest.mark.asyncio
async def test_history_document_shape(mongo_connection, items) -> None:
    repo = MongoHistoryRepository(mongo_connection, "history")
    record = HistoryRecord(
        items=items, outcome=DispenseOutcome.COMPLETED, origin=DispenseOrigin.MANUAL
    )

    await repo.append(record)

    doc = await mongo_connection.database["history"].find_one({"_id": record.id})
    assert doc["status"] == "COMPLETED"
    assert doc["type"] == "Manual Dispense"
    assert len(doc["amounts"]) == 2


@pytest.mark.asyncio
async def test_seed_inserts_defaults_into_empty_collection(mongo_connection) -> None:
    repo = MongoMagazineRepository(mongo_connection, "magazines")

    assert await seed_magazines(repo) is True

    magazines = await repo.list_all()
    assert magazines == list(DEFAULT_MAGAZINES)
    assert magazines[0].name == "Morning Mix"
    assert magazines[1].percentage == 20


@pytest.mark.asyncio
async def test_seed_leaves_existing_magazines_alone(mongo_connection) -> None:
    repo = MongoMagazineRepository(mongo_connection, "magazines")
    custom = Magazine(id=9, name="Evening", type="Melatonin", percentage=100, color="x")
    await repo.add_many([custom])

    assert await seed_magazines(repo) is False

    assert await repo.count() == 1


@pytest.mark.asyncio
async def test_ledger_marks_commands_executed(mongo_connection) -> None:
    ledger = MongoExecutionLedger(mongo_connection, "executed_commands")

    assert not await ledger.is_executed("c1")
    await ledger.mark_executed("c1")
    await ledger.mark_executed("c1")

    assert await ledger.is_executed("c1")
    executed = mongo_connection.database["executed_commands"]
    assert await executed.count_documents({}) == 1
