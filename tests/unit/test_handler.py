"""Tests for the queue based handler."""

from __future__ import annotations

import asyncio

import pytest

from hass_agent.connector import (
    Client,
    ConnectionEvent,
    ConnectorHandler,
    ConsumerStoppedError,
    Event,
    EventBasedHandler,
    MessageEvent,
    RestartedEvent,
    event_based,
)
from tests.helpers.mqtt import RecordingHandler, expect_async_exception, wait_until


def test_handlers_satisfy_protocol():
    assert isinstance(EventBasedHandler(asyncio.Queue()), ConnectorHandler)
    assert isinstance(RecordingHandler(), ConnectorHandler)


@pytest.mark.asyncio
async def test_callbacks_become_events_in_order():
    received: list[Event] = []
    seen_client: list[Client] = []

    async def consume(events: asyncio.Queue[Event], client: Client) -> None:
        seen_client.append(client)
        while True:
            received.append(await events.get())

    client = Client("homeassistant")
    handler = event_based(client, consume)
    try:
        await handler.connected(True)
        await handler.message("switch/x/set", b"ON")
        await handler.restarted()
        await handler.connected(False)

        await wait_until(lambda: len(received) == 4)
    finally:
        assert handler.consumer_task is not None
        _ = handler.consumer_task.cancel()

    assert seen_client == [client]
    assert received == [
        ConnectionEvent(True),
        MessageEvent("switch/x/set", b"ON"),
        RestartedEvent(),
        ConnectionEvent(False),
    ]


@pytest.mark.asyncio
async def test_stopped_consumer_rejects_events():
    async def consume_one(events: asyncio.Queue[Event], _client: Client) -> None:
        _ = await events.get()

    handler = event_based(Client("homeassistant"), consume_one)
    await handler.connected(True)
    assert handler.consumer_task is not None
    await handler.consumer_task

    err = await expect_async_exception(handler.message("switch/x/set", b"ON"), ConsumerStoppedError)

    assert "stopped" in str(err)


@pytest.mark.asyncio
async def test_full_queue_applies_backpressure():
    events: asyncio.Queue[Event] = asyncio.Queue(maxsize=1)
    handler = EventBasedHandler(events)
    await handler.restarted()

    blocked = asyncio.create_task(handler.restarted())
    await asyncio.sleep(0)
    assert not blocked.done()

    _ = events.get_nowait()
    await asyncio.wait_for(blocked, timeout=1)
    assert events.qsize() == 1
