"""MongoExecutionLedger — ``executed_commands`` collection."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from ...ports.idempotency import IExecutionLedger
from .exceptions import MongoPersistenceError
from .serialization import to_bson_datetime

if TYPE_CHECKING:
    from .connection import MongoConnectionManager


class MongoExecutionLedger(IExecutionLedger):
    """Durable record of dispensed ad-hoc command ids, keyed by ``_id``."""

    def __init__(
        self,
        connection: MongoConnectionManager,
        collection: str = "executed_commands",
    ) -> None:
        self._connection = connection
        self._collection_name = collection

    def _collection(self) -> Any:
        return self._connection.database[self._collection_name]

    async def is_executed(self, command_id: str) -> bool:
        doc = await self._collection().find_one({"_id": command_id})
        return doc is not None

    async def mark_executed(self, command_id: str) -> None:
        executed_at = to_bson_datetime(datetime.now(timezone.utc))
        try:
            await self._collection().update_one(
                {"_id": command_id},
                {"$setOnInsert": {"executedAt": executed_at}},
                upsert=True,
            )
        except PyMongoError as e:
            raise MongoPersistenceError(str(e)) from e
