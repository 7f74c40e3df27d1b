"""Pydantic model <-> BSON document mapping.

Documents use the models' camelCase aliases, ``_id`` for the identifier and
naive UTC datetimes (the driver's default representation).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar, cast
from uuid import UUID

from pydantic import BaseModel

from .exceptions import MongoPersistenceError

TModel = TypeVar("TModel", bound=BaseModel)


def to_bson_datetime(value: datetime) -> datetime:
    """Aware or naive (assumed UTC) datetime → naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _serialize_value(value: Any) -> Any:
    """Convert Python types to BSON-safe types."""
    if isinstance(value, datetime):
        return to_bson_datetime(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(_serialize_value(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    return value


def model_to_doc(model: BaseModel, *, id_field: str = "id") -> dict[str, Any]:
    """Convert a Pydantic model to a BSON-ready document keyed by ``_id``."""
    try:
        data = model.model_dump(by_alias=True)
    except Exception as e:
        raise MongoPersistenceError(str(e)) from e
    data = cast("dict[str, Any]", _serialize_value(data))
    data["_id"] = data.pop(id_field)
    return data


def model_from_doc(
    cls: type[TModel],
    doc: dict[str, Any],
    *,
    id_field: str = "id",
) -> TModel:
    """Convert a BSON document to a Pydantic model instance.

    Maps ``_id`` to ``id_field`` (e.g. "id") for the model.
    """
    if not isinstance(doc, dict):
        raise MongoPersistenceError("Document must be a dict")
    doc = dict(doc)
    if "_id" in doc:
        doc[id_field] = doc.pop("_id")
    try:
        return cls.model_validate(doc)
    except Exception as e:
        raise MongoPersistenceError(str(e)) from e


def field_updates(cls: type[BaseModel], changes: dict[str, Any]) -> dict[str, Any]:
    """Map model field names in *changes* to a ``$set`` document."""
    update: dict[str, Any] = {}
    for name, value in changes.items():
        field = cls.model_fields.get(name)
        if field is None:
            raise MongoPersistenceError(f"{cls.__name__} has no field {name!r}")
        update[field.alias or name] = _serialize_value(value)
    return update
