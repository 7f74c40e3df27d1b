"""Ad-hoc command collection and its change-stream feed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from ...domain.command import AdHocCommand
from ...ports.command_feed import ICommandFeed
from ...ports.repositories import ICommandRepository
from .exceptions import MongoPersistenceError
from .serialization import model_from_doc, model_to_doc

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .connection import MongoConnectionManager

logger = logging.getLogger("medbox.persistence")


class MongoCommandRepository(ICommandRepository):
    """The ``dispense_commands`` collection written by the dashboard."""

    def __init__(
        self,
        connection: MongoConnectionManager,
        collection: str = "dispense_commands",
    ) -> None:
        self._connection = connection
        self._collection_name = collection

    def collection(self) -> Any:
        return self._connection.database[self._collection_name]

    async def add(self, command: AdHocCommand) -> str:
        try:
            await self.collection().insert_one(model_to_doc(command))
        except PyMongoError as e:
            raise MongoPersistenceError(str(e)) from e
        return command.id

    async def list_pending(self) -> list[AdHocCommand]:
        commands: list[AdHocCommand] = []
        try:
            async for doc in self.collection().find({}).sort("createdAt", 1):
                command = decode_command(doc)
                if command is not None:
                    commands.append(command)
        except PyMongoError as e:
            raise MongoPersistenceError(str(e)) from e
        return commands

    async def delete(self, command_id: str) -> None:
        try:
            await self.collection().delete_one({"_id": command_id})
        except PyMongoError as e:
            raise MongoPersistenceError(str(e)) from e


def decode_command(doc: dict[str, Any]) -> AdHocCommand | None:
    """Decode one command document; malformed records are logged and skipped."""
    try:
        return model_from_doc(AdHocCommand, doc)
    except MongoPersistenceError as e:
        logger.error("Ignoring malformed dispense command %s: %s", doc.get("_id"), e)
        return None


class MongoCommandFeed(ICommandFeed):
    """
    "Child added" feed over the command collection.

    The change stream is opened *before* the existing records are listed, so
    a record inserted in between is seen by both and deduplicated by id
    rather than lost. Only ids from the initial listing are tracked, and each
    is dropped once its duplicate insert has been skipped. Change streams
    require a replica set.
    """

    PIPELINE: list[dict[str, Any]] = [{"$match": {"operationType": "insert"}}]

    def __init__(self, repository: MongoCommandRepository) -> None:
        self._repository = repository

    def _watch(self) -> Any:
        return self._repository.collection().watch(self.PIPELINE)

    async def stream(self) -> AsyncIterator[AdHocCommand]:
        async with self._watch() as changes:
            # try_next() opens the server-side cursor without blocking
            first = await changes.try_next()
            listed = await self._repository.list_pending()
            # ids whose insert may also arrive on the change stream
            overlap = {command.id for command in listed}
            for command in listed:
                yield command
            if first is not None:
                command = self._from_change(first, overlap)
                if command is not None:
                    yield command
            async for change in changes:
                command = self._from_change(change, overlap)
                if command is not None:
                    yield command

    @staticmethod
    def _from_change(
        change: dict[str, Any], overlap: set[str]
    ) -> AdHocCommand | None:
        doc = change.get("fullDocument")
        if doc is None:
            return None
        command = decode_command(doc)
        if command is None:
            return None
        if command.id in overlap:
            overlap.discard(command.id)
            return None
        return command
