"""MQTT connection manager — one paho session per process, auto-reconnect."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import paho.mqtt.client as mqtt

from ..exceptions import (
    BrokerConnectionError,
    NotConnectedError,
    PublishFailedError,
    SubscriptionFailedError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("medbox.mqtt")


class MqttConnectionManager:
    """Manages a single MQTT session for the process.

    paho runs its network loop on a background thread; every callback is
    marshalled onto the asyncio loop that called :meth:`connect`, so message
    handlers and pending acknowledgment futures are only touched from the
    event loop. A dropped session is re-established by paho with a fixed
    ``reconnect_interval``; operations in flight at the drop are failed and
    not resumed.

    Call :meth:`connect` before use, :meth:`close` on shutdown and
    :meth:`health_check` for probes.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 1883,
        *,
        username: str | None = None,
        password: str | None = None,
        client_id: str = "",
        keepalive: int = 60,
        reconnect_interval: float = 1.0,
        connect_timeout: float = 4.0,
        operation_timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._client_id = client_id
        self._keepalive = keepalive
        self._reconnect_interval = reconnect_interval
        self._connect_timeout = connect_timeout
        self._operation_timeout = operation_timeout
        self._client: mqtt.Client | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._connected = False
        self._connected_event: asyncio.Event | None = None
        self._handlers: dict[str, list[Callable[[str, bytes], None]]] = {}
        self._persistent: dict[str, int] = {}
        self._pending_subacks: dict[int, asyncio.Future[Any]] = {}
        self._pending_unsubacks: dict[int, asyncio.Future[Any]] = {}
        self._pending_pubacks: dict[int, asyncio.Future[Any]] = {}

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def url(self) -> str:
        return f"mqtt://{self._host}:{self._port}"

    # -- lifecycle ----------------------------------------------------------

    async def connect(self) -> None:
        """Start the session. Idempotent if already started.

        Waits up to ``connect_timeout`` for the first CONNACK; if the broker
        is not reachable yet, paho keeps retrying in the background.
        """
        if self._client is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._connected_event = asyncio.Event()
        client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            clean_session=True,
        )
        if self._username is not None:
            client.username_pw_set(self._username, self._password)
        client.reconnect_delay_set(
            min_delay=self._reconnect_interval,  # type: ignore[arg-type]
            max_delay=self._reconnect_interval,  # type: ignore[arg-type]
        )
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        client.on_subscribe = self._on_subscribe
        client.on_unsubscribe = self._on_unsubscribe
        client.on_publish = self._on_publish

        logger.info("Connecting to MQTT broker at %s...", self.url)
        try:
            client.connect_async(self._host, self._port, keepalive=self._keepalive)
            client.loop_start()
        except (OSError, ValueError) as e:
            raise BrokerConnectionError(str(e)) from e
        self._client = client

        try:
            await asyncio.wait_for(
                self._connected_event.wait(), timeout=self._connect_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "MQTT broker %s not reachable yet; retrying every %.1fs",
                self.url,
                self._reconnect_interval,
            )

    async def close(self) -> None:
        """Disconnect and stop the network thread."""
        client, self._client = self._client, None
        if client is None:
            return
        self._connected = False
        client.disconnect()
        await asyncio.to_thread(client.loop_stop)
        self._fail_pending(NotConnectedError("MQTT connection closed"))
        logger.info("MQTT connection closed")

    async def health_check(self) -> bool:
        """Return True if the session is up."""
        return self._client is not None and self._connected

    # -- operations ---------------------------------------------------------

    async def subscribe(self, topic: str, qos: int = 1) -> None:
        client = self._require_connected()
        result, mid = client.subscribe(topic, qos=qos)
        if result != mqtt.MQTT_ERR_SUCCESS or mid is None:
            raise SubscriptionFailedError(topic, mqtt.error_string(result))
        reason_codes = await self._await_ack(
            self._pending_subacks, mid, SubscriptionFailedError(topic, "no SUBACK")
        )
        refused = [rc for rc in reason_codes if rc.is_failure]
        if refused:
            raise SubscriptionFailedError(topic, str(refused[0]))

    async def unsubscribe(self, topic: str) -> None:
        client = self._require_connected()
        result, mid = client.unsubscribe(topic)
        if result != mqtt.MQTT_ERR_SUCCESS or mid is None:
            logger.warning(
                "Unsubscribe from %s rejected: %s", topic, mqtt.error_string(result)
            )
            return
        await self._await_ack(
            self._pending_unsubacks, mid, NotConnectedError(f"no UNSUBACK for {topic}")
        )

    async def publish(self, topic: str, payload: bytes, qos: int = 1) -> None:
        client = self._require_connected()
        info = client.publish(topic, payload, qos=qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishFailedError(topic, mqtt.error_string(info.rc))
        if qos == 0:
            return
        await self._await_ack(
            self._pending_pubacks, info.mid, PublishFailedError(topic, "no PUBACK")
        )

    def add_message_handler(
        self, topic_filter: str, handler: Callable[[str, bytes], None]
    ) -> None:
        self._handlers.setdefault(topic_filter, []).append(handler)

    def remove_message_handler(
        self, topic_filter: str, handler: Callable[[str, bytes], None]
    ) -> None:
        handlers = self._handlers.get(topic_filter, [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self._handlers.pop(topic_filter, None)

    async def subscribe_persistent(
        self,
        topic_filter: str,
        handler: Callable[[str, bytes], None],
        qos: int = 1,
    ) -> None:
        """Register a subscription that is re-issued on every (re)connect."""
        self._persistent[topic_filter] = qos
        self.add_message_handler(topic_filter, handler)
        if self._connected:
            await self.subscribe(topic_filter, qos=qos)

    # -- internals ----------------------------------------------------------

    def _require_connected(self) -> mqtt.Client:
        if self._client is None or not self._connected:
            raise NotConnectedError("MQTT client not connected.")
        return self._client

    async def _await_ack(
        self,
        pending: dict[int, asyncio.Future[Any]],
        mid: int,
        on_timeout: Exception,
    ) -> Any:
        assert self._loop is not None
        future = self._loop.create_future()
        pending[mid] = future
        try:
            return await asyncio.wait_for(future, timeout=self._operation_timeout)
        except asyncio.TimeoutError:
            raise on_timeout from None
        finally:
            pending.pop(mid, None)

    def _call_soon(self, callback: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(callback, *args)

    def _fail_pending(self, error: Exception) -> None:
        for pending in (
            self._pending_subacks,
            self._pending_unsubacks,
            self._pending_pubacks,
        ):
            for future in pending.values():
                if not future.done():
                    future.set_exception(error)
            pending.clear()

    @staticmethod
    def _resolve(pending: dict[int, asyncio.Future[Any]], mid: int, value: Any) -> None:
        future = pending.get(mid)
        if future is not None and not future.done():
            future.set_result(value)

    # paho callbacks (network thread)

    def _on_connect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._call_soon(self._handle_connect, reason_code)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._call_soon(self._handle_disconnect, reason_code)

    def _on_message(self, _client: mqtt.Client, _userdata: Any, message: Any) -> None:
        self._call_soon(self._dispatch, message.topic, bytes(message.payload))

    def _on_subscribe(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        mid: int,
        reason_codes: list[Any],
        _properties: Any,
    ) -> None:
        self._call_soon(self._resolve, self._pending_subacks, mid, reason_codes)

    def _on_unsubscribe(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        mid: int,
        reason_codes: Any,
        _properties: Any,
    ) -> None:
        self._call_soon(self._resolve, self._pending_unsubacks, mid, reason_codes)

    def _on_publish(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        mid: int,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._call_soon(self._resolve, self._pending_pubacks, mid, reason_code)

    # event-loop side

    def _handle_connect(self, reason_code: Any) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connection refused: %s", reason_code)
            return
        self._connected = True
        if self._connected_event is not None:
            self._connected_event.set()
        logger.info("MQTT connected to %s", self.url)
        if self._client is None:
            return
        for topic_filter, qos in self._persistent.items():
            self._client.subscribe(topic_filter, qos=qos)

    def _handle_disconnect(self, reason_code: Any) -> None:
        was_connected, self._connected = self._connected, False
        if self._connected_event is not None:
            self._connected_event.clear()
        self._fail_pending(NotConnectedError(f"MQTT connection lost: {reason_code}"))
        if was_connected and self._client is not None:
            logger.warning(
                "MQTT disconnected (%s); reconnecting every %.1fs",
                reason_code,
                self._reconnect_interval,
            )

    def _dispatch(self, topic: str, payload: bytes) -> None:
        for topic_filter, handlers in list(self._handlers.items()):
            if not mqtt.topic_matches_sub(topic_filter, topic):
                continue
            for handler in list(handlers):
                try:
                    handler(topic, payload)
                except Exception:
                    logger.exception("Message handler failed for %s", topic)
