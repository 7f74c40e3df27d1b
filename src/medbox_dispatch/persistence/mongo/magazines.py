"""MongoMagazineRepository — ``magazines`` collection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from ...domain.magazine import Magazine
from ...ports.repositories import IMagazineRepository
from .exceptions import MongoPersistenceError
from .serialization import model_from_doc, model_to_doc

if TYPE_CHECKING:
    from .connection import MongoConnectionManager


class MongoMagazineRepository(IMagazineRepository):
    def __init__(
        self, connection: MongoConnectionManager, collection: str = "magazines"
    ) -> None:
        self._connection = connection
        self._collection_name = collection

    def _collection(self) -> Any:
        return self._connection.database[self._collection_name]

    async def count(self) -> int:
        return int(await self._collection().count_documents({}))

    async def add_many(self, magazines: list[Magazine]) -> None:
        if not magazines:
            return
        try:
            await self._collection().insert_many([model_to_doc(m) for m in magazines])
        except PyMongoError as e:
            raise MongoPersistenceError(str(e)) from e

    async def list_all(self) -> list[Magazine]:
        cursor = self._collection().find({}).sort("_id", 1)
        return [model_from_doc(Magazine, doc) async for doc in cursor]
