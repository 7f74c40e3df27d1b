"""Correlation token management — ties log lines to one device exchange."""

from __future__ import annotations

import contextlib
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID in context."""
    _correlation_id.set(correlation_id)


def generate_correlation_token() -> str:
    """Generate a new correlation token for one command/ack exchange."""
    return uuid.uuid4().hex


@contextlib.contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """Bind *correlation_id* to the current context for the block's duration."""
    token = _correlation_id.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id.reset(token)
