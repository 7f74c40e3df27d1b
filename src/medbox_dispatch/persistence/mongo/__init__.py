"""MongoDB adapters for plans, history, ad-hoc commands and magazines."""

from .commands import MongoCommandFeed, MongoCommandRepository
from .connection import MongoConnectionManager
from .exceptions import MongoConnectionError, MongoPersistenceError
from .history import MongoHistoryRepository
from .idempotency import MongoExecutionLedger
from .magazines import MongoMagazineRepository
from .plans import MongoPlanRepository

__all__ = [
    "MongoCommandFeed",
    "MongoCommandRepository",
    "MongoConnectionError",
    "MongoConnectionManager",
    "MongoExecutionLedger",
    "MongoHistoryRepository",
    "MongoMagazineRepository",
    "MongoPersistenceError",
    "MongoPlanRepository",
]
