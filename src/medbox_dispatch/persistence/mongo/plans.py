"""MongoPlanRepository — the ``plans`` collection as seen by the scheduler."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from ...domain.plan import DispensePlan, PlanStatus
from ...ports.repositories import IPlanRepository
from ...primitives.exceptions import EntityNotFoundError
from .exceptions import MongoPersistenceError
from .serialization import field_updates, model_from_doc, model_to_doc, to_bson_datetime

if TYPE_CHECKING:
    from datetime import datetime

    from .connection import MongoConnectionManager

logger = logging.getLogger("medbox.persistence")


class MongoPlanRepository(IPlanRepository):
    """
    Plan store over MongoDB.

    Every :meth:`update` is a single-document ``$set``, atomic on its own.
    A due document that no longer validates is marked ``ERROR`` by
    :meth:`find_due` and skipped, so it cannot block other plans or be
    reported again on every tick.
    """

    def __init__(
        self, connection: MongoConnectionManager, collection: str = "plans"
    ) -> None:
        self._connection = connection
        self._collection_name = collection

    def _collection(self) -> Any:
        return self._connection.database[self._collection_name]

    async def add(self, plan: DispensePlan) -> str:
        """Insert or replace the plan document. Returns the plan id."""
        doc = model_to_doc(plan)
        try:
            await self._collection().replace_one({"_id": doc["_id"]}, doc, upsert=True)
        except PyMongoError as e:
            raise MongoPersistenceError(str(e)) from e
        return plan.id

    async def get(self, plan_id: str) -> DispensePlan | None:
        doc = await self._collection().find_one({"_id": plan_id})
        if doc is None:
            return None
        return model_from_doc(DispensePlan, doc)

    async def find_due(self, now: datetime) -> list[DispensePlan]:
        query = {
            "status": PlanStatus.PENDING.value,
            "scheduledAt": {"$lte": to_bson_datetime(now)},
        }
        plans: list[DispensePlan] = []
        malformed: list[Any] = []
        try:
            cursor = self._collection().find(query).sort("scheduledAt", 1)
            async for doc in cursor:
                try:
                    plans.append(model_from_doc(DispensePlan, doc))
                except MongoPersistenceError as e:
                    logger.error(
                        "Marking malformed plan %s as ERROR: %s", doc.get("_id"), e
                    )
                    malformed.append(doc.get("_id"))
            if malformed:
                await self._collection().update_many(
                    {"_id": {"$in": malformed}},
                    {"$set": {"status": PlanStatus.ERROR.value}},
                )
        except PyMongoError as e:
            raise MongoPersistenceError(str(e)) from e
        return plans

    async def update(self, plan_id: str, **changes: Any) -> None:
        update = field_updates(DispensePlan, changes)
        try:
            result = await self._collection().update_one(
                {"_id": plan_id}, {"$set": update}
            )
        except PyMongoError as e:
            raise MongoPersistenceError(str(e)) from e
        if result.matched_count == 0:
            raise EntityNotFoundError("DispensePlan", plan_id)
