"""Shared fixtures: in-memory broker and stores, a simulated device and mongomock."""

from __future__ import annotations

import pytest

from medbox_dispatch.adapters.memory import (
    InMemoryBroker,
    InMemoryCommandStore,
    InMemoryHistoryRepository,
    InMemoryPlanRepository,
    SimulatedDevice,
)
from medbox_dispatch.dispensing import DispenseOrchestrator
from medbox_dispatch.domain import DispenseItem
from medbox_dispatch.messaging import DeviceChannels, ProtocolClient
from medbox_dispatch.persistence.mongo import MongoConnectionManager

ACK_TIMEOUT = 0.2


@pytest.fixture
def channels() -> DeviceChannels:
    return DeviceChannels()


@pytest.fixture
def broker() -> InMemoryBroker:
    return InMemoryBroker()


@pytest.fixture
def device(broker: InMemoryBroker, channels: DeviceChannels) -> SimulatedDevice:
    return SimulatedDevice(broker, channels)


@pytest.fixture
def history() -> InMemoryHistoryRepository:
    return InMemoryHistoryRepository()


@pytest.fixture
def plans() -> InMemoryPlanRepository:
    return InMemoryPlanRepository()


@pytest.fixture
def command_store() -> InMemoryCommandStore:
    return InMemoryCommandStore()


@pytest.fixture
def client(broker: InMemoryBroker) -> ProtocolClient:
    return ProtocolClient(broker, default_timeout=ACK_TIMEOUT)


@pytest.fixture
def orchestrator(
    client: ProtocolClient,
    history: InMemoryHistoryRepository,
    channels: DeviceChannels,
) -> DispenseOrchestrator:
    return DispenseOrchestrator(client, history, channels)


@pytest.fixture
def items() -> list[DispenseItem]:
    return [
        DispenseItem(magazine_id=1, magazine_name="Morning Mix", amount=2),
        DispenseItem(magazine_id=2, magazine_name="Pain Relief", amount=1),
    ]


@pytest.fixture
async def mongo_connection():
    """MongoConnectionManager backed by mongomock instead of a server."""
    from mongomock_motor import AsyncMongoMockClient

    connection = MongoConnectionManager.__new__(MongoConnectionManager)
    connection._client = AsyncMongoMockClient(default_database_name="test_db")
    connection._database = "test_db"
    connection._url = "mongodb://mock:27017"

    async def _mock_connect():
        return connection._client

    connection.connect = _mock_connect
    yield connection
