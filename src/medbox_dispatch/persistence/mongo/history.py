"""MongoHistoryRepository — append-only ``history`` collection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from ...domain.history import HistoryRecord
from ...ports.repositories import IHistoryRepository
from .exceptions import MongoPersistenceError
from .serialization import model_from_doc, model_to_doc

if TYPE_CHECKING:
    from .connection import MongoConnectionManager


class MongoHistoryRepository(IHistoryRepository):
    def __init__(
        self, connection: MongoConnectionManager, collection: str = "history"
    ) -> None:
        self._connection = connection
        self._collection_name = collection

    def _collection(self) -> Any:
        return self._connection.database[self._collection_name]

    async def append(self, record: HistoryRecord) -> str:
        try:
            await self._collection().insert_one(model_to_doc(record))
        except PyMongoError as e:
            raise MongoPersistenceError(str(e)) from e
        return record.id

    async def list_all(self) -> list[HistoryRecord]:
        """All records, oldest first."""
        cursor = self._collection().find({}).sort("timestamp", 1)
        return [model_from_doc(HistoryRecord, doc) async for doc in cursor]
