"""JSON encoding of device commands and decoding of acknowledgments."""

from __future__ import annotations

import json
from typing import Any

from .envelope import CORRELATION_TOKEN_KEY
from .exceptions import MessagingSerializationError


def _json_default(obj: Any) -> Any:
    """Serialize datetime, enums and pydantic models."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", by_alias=True)
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    if hasattr(obj, "value"):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_command(correlation_token: str, payload: dict[str, Any]) -> bytes:
    """Encode *payload* with the correlation token embedded at the top level."""
    try:
        body = {CORRELATION_TOKEN_KEY: correlation_token, **payload}
        return json.dumps(body, default=_json_default).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise MessagingSerializationError(str(e)) from e


def decode_ack(raw: bytes) -> tuple[str, dict[str, Any]]:
    """Split an ack body into ``(correlation_token, content)``.

    Raises:
        MessagingSerializationError: if the body is not a JSON object carrying
            a string correlation token.
    """
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MessagingSerializationError(str(e)) from e
    if not isinstance(data, dict):
        raise MessagingSerializationError("ack payload is not a JSON object")
    token = data.pop(CORRELATION_TOKEN_KEY, None)
    if not isinstance(token, str) or not token:
        raise MessagingSerializationError("ack payload carries no correlation token")
    return token, data
