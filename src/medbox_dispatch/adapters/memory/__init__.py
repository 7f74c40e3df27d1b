from .broker import InMemoryBroker
from .commands import InMemoryCommandStore
from .device import DeviceMode, SimulatedDevice
from .idempotency import InMemoryExecutionLedger
from .repositories import (
    InMemoryHistoryRepository,
    InMemoryMagazineRepository,
    InMemoryPlanRepository,
)

__all__ = [
    "DeviceMode",
    "InMemoryBroker",
    "InMemoryCommandStore",
    "InMemoryExecutionLedger",
    "InMemoryHistoryRepository",
    "InMemoryMagazineRepository",
    "InMemoryPlanRepository",
    "SimulatedDevice",
]
