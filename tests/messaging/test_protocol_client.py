"""Tests for ProtocolClient — correlated command/ack exchanges."""

import asyncio
import json
import logging

import pytest

from medbox_dispatch.adapters.memory import DeviceMode
from medbox_dispatch.messaging import (
    AckTimeoutError,
    NotConnectedError,
    ProtocolClient,
    PublishFailedError,
)
from medbox_dispatch.messaging.exceptions import SubscriptionFailedError

PAYLOAD = {"items": [{"magazineId": 1, "magazineName": "Morning Mix", "amount": 2}]}


async def _send(client, channels, **kwargs):
    return await client.send_command(
        channels.device_topic,
        channels.dispense_command,
        PAYLOAD,
        channels.ack_topic,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_send_command_returns_matching_ack(client, channels, device) -> None:

    ack = await _send(client, channels, correlation_token="tok-1")

    assert ack.correlation_token == "tok-1"
    assert ack.topic == channels.ack_topic
    assert ack.content == {"dispensed": True}
    assert device.received == [{"correlationToken": "tok-1", **PAYLOAD}]


@pytest.mark.asyncio
async def test_publish_goes_to_device_command_topic(
    client, channels, broker, device
) -> None:
    await _send(client, channels)

    published = broker.get_published(channels.dispense_topic)
    assert len(published) == 1
    body = json.loads(published[0][1])
    assert body["correlationToken"]
    assert body["items"] == PAYLOAD["items"]


@pytest.mark.asyncio
async def test_exchange_state_is_released_after_ack(
    client, channels, broker, device
) -> None:
    await _send(client, channels)

    assert broker.handler_count(channels.ack_topic) == 0
    assert channels.ack_topic not in broker.subscriptions
    assert not client.busy


@pytest.mark.asyncio
async def test_foreign_token_never_resolves_call(
    client, channels, device, caplog
) -> None:
    device.mode = DeviceMode.FOREIGN_TOKEN

    with caplog.at_level(logging.WARNING, logger="medbox.protocol"):
        with pytest.raises(AckTimeoutError) as exc_info:
            await _send(client, channels, correlation_token="mine", timeout=0.05)

    assert exc_info.value.correlation_token == "mine"
    assert "foreign token" in caplog.text


@pytest.mark.asyncio
async def test_silent_device_times_out_and_releases_state(
    client, channels, broker, device
) -> None:
    device.mode = DeviceMode.SILENT

    with pytest.raises(AckTimeoutError):
        await _send(client, channels, timeout=0.05)

    assert broker.handler_count(channels.ack_topic) == 0
    assert channels.ack_topic not in broker.subscriptions


@pytest.mark.asyncio
async def test_late_ack_after_timeout_is_ignored(
    client, channels, broker, device
) -> None:
    device.mode = DeviceMode.SILENT

    with pytest.raises(AckTimeoutError):
        await _send(client, channels, correlation_token="late", timeout=0.05)

    hits = broker.deliver(
        channels.ack_topic, json.dumps({"correlationToken": "late"}).encode()
    )
    assert hits == 0


@pytest.mark.asyncio
async def test_not_connected_fails_without_publishing(client, channels, broker) -> None:

    broker.set_connected(False)

    with pytest.raises(NotConnectedError, match="not connected"):
        await _send(client, channels)

    assert broker.get_published() == []


@pytest.mark.asyncio
async def test_publish_failure_is_raised_and_cleans_up(
    client, channels, broker
) -> None:
    broker.publish_error = "quota exceeded"

    with pytest.raises(PublishFailedError) as exc_info:
        await _send(client, channels)

    assert exc_info.value.reason == "quota exceeded"
    assert broker.handler_count(channels.ack_topic) == 0
    assert channels.ack_topic not in broker.subscriptions


@pytest.mark.asyncio
async def test_refused_subscription_is_raised(client, channels, broker) -> None:

    broker.subscribe_error = "not authorized"

    with pytest.raises(SubscriptionFailedError):
        await _send(client, channels)

    assert broker.get_published() == []
    assert broker.handler_count(channels.ack_topic) == 0


@pytest.mark.asyncio
async def test_undecodable_messages_on_ack_channel_are_skipped(
    client, channels, broker
) -> None:
    def reply(topic: str, payload: bytes) -> None:
        broker.deliver_soon(channels.ack_topic, b"true")
        broker.deliver_soon(channels.ack_topic, b'{"status": "ok"}')
        broker.deliver_soon(
            channels.ack_topic,
            json.dumps({"correlationToken": "tok", "slot": 3}).encode(),
        )

    broker.observe_publishes(reply)

    ack = await _send(client, channels, correlation_token="tok", timeout=1.0)

    assert ack.content == {"slot": 3}


@pytest.mark.asyncio
async def test_concurrent_calls_are_serialized(client, channels, device) -> None:

    tokens = [f"t{i}" for i in range(3)]

    acks = await asyncio.gather(
        *(_send(client, channels, correlation_token=t) for t in tokens)
    )

    assert [ack.correlation_token for ack in acks] == tokens
    assert [body["correlationToken"] for body in device.received] == tokens
    # exactly one ack waiter exists whenever the device sees a command
    assert device.waiters_at_command == [1, 1, 1]


@pytest.mark.asyncio
async def test_failed_call_does_not_block_next_call(client, channels, device) -> None:

    device.mode = DeviceMode.SILENT
    with pytest.raises(AckTimeoutError):
        await _send(client, channels, timeout=0.05)

    device.mode = DeviceMode.ACK
    ack = await _send(client, channels, correlation_token="next")

    assert ack.correlation_token == "next"


@pytest.mark.asyncio
async def test_busy_while_waiting_for_ack(client, channels, device) -> None:

    device.mode = DeviceMode.SILENT
    task = asyncio.create_task(_send(client, channels, timeout=0.1))
    await asyncio.sleep(0.01)

    assert client.busy

    with pytest.raises(AckTimeoutError):
        await task
    assert not client.busy


@pytest.mark.asyncio
async def test_default_timeout_is_used(broker, channels, device) -> None:

    device.mode = DeviceMode.SILENT
    client = ProtocolClient(broker, default_timeout=0.05)

    with pytest.raises(AckTimeoutError) as exc_info:
        await _send(client, channels)

    assert exc_info.value.timeout == 0.05
