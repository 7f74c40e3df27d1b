"""DispenseOrchestrator — one protocol call, one history record."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..correlation import correlation_scope, generate_correlation_token
from ..domain.history import DispenseOutcome, HistoryRecord
from ..primitives.exceptions import InvariantViolationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..domain.history import DispenseOrigin
    from ..domain.items import DispenseItem
    from ..messaging.envelope import AckMessage, DeviceChannels
    from ..messaging.protocol import ProtocolClient
    from ..ports.repositories import IHistoryRepository

logger = logging.getLogger("medbox.dispense")


class DispenseOrchestrator:
    """Turns a logical dispense request into exactly one device command and
    exactly one history record.

    The history record is written in a ``finally`` block, so timeouts,
    rejected publishes and a missing broker session are audited exactly like
    acknowledged dispenses. Protocol failures propagate to the caller after
    the record is written. Nothing is retried here: duplicate physical
    dispenses are prevented by issuing one call per request.
    """

    def __init__(
        self,
        client: ProtocolClient,
        history: IHistoryRepository,
        channels: DeviceChannels,
        *,
        ack_timeout: float | None = None,
    ) -> None:
        self._client = client
        self._history = history
        self._channels = channels
        self._ack_timeout = ack_timeout

    async def execute(
        self,
        items: Sequence[DispenseItem],
        origin: DispenseOrigin,
    ) -> HistoryRecord:
        """Dispense *items* and return the COMPLETED history record.

        Raises:
            InvariantViolationError: *items* is empty; nothing is sent or
                recorded.
            MessagingError: any protocol client failure, after the ERROR
                record has been written.
            PersistenceError: the history store rejected the record. When
                the dispense itself failed, the protocol error is chained as
                its ``__cause__``.
        """
        if not items:
            raise InvariantViolationError("A dispense needs at least one item.")
        token = generate_correlation_token()
        ack: AckMessage | None = None
        failure: str | None = None
        cause: Exception | None = None
        with correlation_scope(token):
            logger.info(
                "Dispensing %d item(s) (%s, token=%s)", len(items), origin.value, token
            )
            try:
                ack = await self._client.send_command(
                    self._channels.device_topic,
                    self._channels.dispense_command,
                    {"items": [item.model_dump(by_alias=True) for item in items]},
                    self._channels.ack_topic,
                    correlation_token=token,
                    timeout=self._ack_timeout,
                )
            except Exception as e:
                cause = e
                failure = f"{type(e).__name__}: {e}"
                logger.error("Dispense failed (token=%s): %s", token, failure)
                raise
            finally:
                record = HistoryRecord(
                    timestamp=datetime.now(timezone.utc),
                    items=list(items),
                    outcome=(
                        DispenseOutcome.COMPLETED
                        if ack is not None
                        else DispenseOutcome.ERROR
                    ),
                    origin=origin,
                    correlation_token=token,
                    ack=ack.content if ack is not None else None,
                    error=None if ack is not None else failure or "interrupted",
                )
                try:
                    await self._history.append(record)
                except Exception as append_error:
                    if cause is None:
                        raise
                    raise append_error from cause
                logger.info(
                    "History recorded: %s (token=%s)", record.outcome.value, token
                )
        return record
