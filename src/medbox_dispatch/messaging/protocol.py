"""ProtocolClient — command-with-acknowledgment over a shared ack channel."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ..correlation import generate_correlation_token
from .envelope import AckMessage
from .exceptions import (
    AckTimeoutError,
    MessagingError,
    MessagingSerializationError,
    NotConnectedError,
)
from .serialization import decode_ack, encode_command

if TYPE_CHECKING:
    from ..ports.broker import IBrokerConnection

logger = logging.getLogger("medbox.protocol")

DEFAULT_ACK_TIMEOUT = 15.0


class AckExchange:
    """Correlates one outstanding publish with its expected acknowledgment.

    The ack channel is shared by every command sent to the device, so each
    inbound message is checked against :attr:`correlation_token`; anything
    else is discarded and the wait stays armed. The underlying future settles
    at most once: ack, timeout or teardown, whichever comes first.
    """

    def __init__(self, correlation_token: str, ack_channel: str) -> None:
        self.correlation_token = correlation_token
        self.ack_channel = ack_channel
        self._future: asyncio.Future[AckMessage] = (
            asyncio.get_running_loop().create_future()
        )

    @property
    def settled(self) -> bool:
        return self._future.done()

    def offer(self, topic: str, raw: bytes) -> None:
        """Message handler: settle if *raw* is our acknowledgment."""
        if self.settled or topic != self.ack_channel:
            return
        try:
            token, content = decode_ack(raw)
        except MessagingSerializationError as e:
            logger.debug("Discarding undecodable message on %s: %s", topic, e)
            return
        if token != self.correlation_token:
            logger.warning(
                "Discarding ack for foreign token %s on %s (waiting for %s)",
                token,
                topic,
                self.correlation_token,
            )
            return
        self._future.set_result(
            AckMessage(correlation_token=token, topic=topic, content=content)
        )

    async def wait(self, timeout: float) -> AckMessage:
        try:
            return await asyncio.wait_for(self._future, timeout=timeout)
        except asyncio.TimeoutError:
            raise AckTimeoutError(
                self.ack_channel, self.correlation_token, timeout
            ) from None

    def close(self) -> None:
        """Settle a still-pending exchange so late messages are ignored."""
        if not self._future.done():
            self._future.cancel()


class ProtocolClient:
    """Sends one command to the device and waits for its correlated ack.

    All calls are serialized through a single-slot mutex held for the full
    publish-and-await-ack duration, so at most one command is outstanding on
    the device at any time. Nothing is retried here; retry policy belongs to
    the caller.
    """

    def __init__(
        self,
        connection: IBrokerConnection,
        *,
        default_timeout: float = DEFAULT_ACK_TIMEOUT,
        qos: int = 1,
    ) -> None:
        self._connection = connection
        self._default_timeout = default_timeout
        self._qos = qos
        self._slot = asyncio.Lock()

    @property
    def busy(self) -> bool:
        """True while a command is outstanding or queued for the slot."""
        return self._slot.locked()

    async def send_command(
        self,
        device_id: str,
        command_name: str,
        payload: dict[str, Any],
        ack_channel: str,
        *,
        correlation_token: str | None = None,
        timeout: float | None = None,
    ) -> AckMessage:
        """Publish ``payload`` to ``{device_id}/{command_name}`` and await the ack.

        Raises:
            NotConnectedError: no broker session when the slot is acquired.
            SubscriptionFailedError: the broker refused the ack subscription.
            PublishFailedError: the transport rejected the publish.
            AckTimeoutError: no matching ack within ``timeout`` seconds.
        """
        token = correlation_token or generate_correlation_token()
        wait = self._default_timeout if timeout is None else timeout
        async with self._slot:
            return await self._exchange(
                f"{device_id}/{command_name}", payload, ack_channel, token, wait
            )

    async def _exchange(
        self,
        topic: str,
        payload: dict[str, Any],
        ack_channel: str,
        token: str,
        timeout: float,
    ) -> AckMessage:
        if not self._connection.is_connected:
            raise NotConnectedError("Broker client not connected.")
        body = encode_command(token, payload)
        exchange = AckExchange(token, ack_channel)
        self._connection.add_message_handler(ack_channel, exchange.offer)
        try:
            await self._connection.subscribe(ack_channel, qos=self._qos)
            await self._connection.publish(topic, body, qos=self._qos)
            logger.info(
                "Sent command to %s (token=%s), waiting for ack on %s",
                topic,
                token,
                ack_channel,
            )
            ack = await exchange.wait(timeout)
            logger.info("Acknowledgment received on %s (token=%s)", ack_channel, token)
            return ack
        finally:
            exchange.close()
            self._connection.remove_message_handler(ack_channel, exchange.offer)
            await self._release_subscription(ack_channel)

    async def _release_subscription(self, ack_channel: str) -> None:
        try:
            await self._connection.unsubscribe(ack_channel)
        except MessagingError as e:
            logger.warning("Could not unsubscribe from %s: %s", ack_channel, e)
