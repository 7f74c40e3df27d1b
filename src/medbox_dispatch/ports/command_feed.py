"""ICommandFeed — "child added" stream over the ad-hoc command collection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ..domain.command import AdHocCommand


@runtime_checkable
class ICommandFeed(Protocol):
    """
    Realtime stream of ad-hoc commands.

    ``stream()`` first yields every record present when the stream opens,
    then each newly inserted record, each exactly once per stream. No
    delivery marker is kept across streams: reopening the feed replays every
    record still present.
    """

    def stream(self) -> AsyncIterator[AdHocCommand]: ...
