"""Ports — protocols implemented by the infrastructure adapters."""

from .background_worker import IBackgroundWorker
from .broker import IBrokerConnection
from .command_feed import ICommandFeed
from .idempotency import IExecutionLedger
from .repositories import (
    ICommandRepository,
    IHistoryRepository,
    IMagazineRepository,
    IPlanRepository,
)

__all__ = [
    "IBackgroundWorker",
    "IBrokerConnection",
    "ICommandFeed",
    "ICommandRepository",
    "IExecutionLedger",
    "IHistoryRepository",
    "IMagazineRepository",
    "IPlanRepository",
]
