"""Tests for the bundled example devices."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from hass_agent.connector import Client
from hass_agent.devices import CustomDevice, raw_handler
from hass_agent.devices.custom import CustomDeviceError
from tests.helpers.mqtt import expect_async_exception, wait_until

SWITCH_COMMAND = "switch/test-id10-switch/set"
SWITCH_STATE = "homeassistant/switch/test-id10-switch/state"
MOTION_STATE = "homeassistant/binary_sensor/test-id10-motion/state"


def published(session: AsyncMock) -> list[tuple[str, object]]:
    return [(c.args[0], c.args[1]) for c in session.publish.await_args_list]


@pytest_asyncio.fixture
async def device(attached_client: Client) -> AsyncGenerator[CustomDevice]:
    device = CustomDevice(attached_client, toggle_interval=60)
    yield device
    toggler = device._toggler
    _ = device.worker.cancel()
    _ = await asyncio.gather(device.worker, return_exceptions=True)
    if toggler is not None:
        _ = await asyncio.gather(toggler, return_exceptions=True)


class TestCustomDevice:
    @pytest.mark.asyncio
    async def test_connected_subscribes_and_announces(self, device: CustomDevice, mqtt_session: AsyncMock):
        await device.connected(True)

        mqtt_session.subscribe.assert_awaited_once_with("homeassistant/" + SWITCH_COMMAND, qos=1)
        await wait_until(lambda: mqtt_session.publish.await_count == 4)
        messages = published(mqtt_session)
        config_topics = [topic for topic, _ in messages[:2]]
        assert config_topics == [
            "homeassistant/binary_sensor/test-id10-motion/config",
            "homeassistant/switch/test-id10-switch/config",
        ]
        switch_doc = json.loads(messages[1][1])
        assert switch_doc["command_topic"] == "homeassistant/" + SWITCH_COMMAND
        assert switch_doc["device"] == {"identifiers": ["test-id1"], "name": "Test Device 1"}
        assert messages[2:] == [(SWITCH_STATE, "OFF"), (MOTION_STATE, "OFF")]

    @pytest.mark.asyncio
    async def test_disconnect_is_ignored(self, device: CustomDevice, mqtt_session: AsyncMock):
        await device.connected(False)

        mqtt_session.subscribe.assert_not_awaited()
        mqtt_session.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_restarted_announces_again(self, device: CustomDevice, mqtt_session: AsyncMock):
        await device.restarted()

        assert [topic for topic, _ in published(mqtt_session)] == [
            "homeassistant/binary_sensor/test-id10-motion/config",
            "homeassistant/switch/test-id10-switch/config",
        ]

    @pytest.mark.asyncio
    async def test_switch_on_starts_motion(self, device: CustomDevice, mqtt_session: AsyncMock):
        await device.message(SWITCH_COMMAND, b"ON")

        await wait_until(lambda: (MOTION_STATE, "ON") in published(mqtt_session))
        assert published(mqtt_session)[0] == (SWITCH_STATE, "ON")
        assert device.switch_on

    @pytest.mark.asyncio
    async def test_switch_off_stops_motion(self, device: CustomDevice, mqtt_session: AsyncMock):
        await device.message(SWITCH_COMMAND, b"ON")
        await wait_until(lambda: (MOTION_STATE, "ON") in published(mqtt_session))

        await device.message(SWITCH_COMMAND, b"OFF")

        await wait_until(lambda: (SWITCH_STATE, "OFF") in published(mqtt_session))
        assert not device.switch_on
        assert device._toggler is None

    @pytest.mark.asyncio
    async def test_unrelated_topic_ignored(self, device: CustomDevice, mqtt_session: AsyncMock):
        await device.message("switch/other/set", b"ON")
        await asyncio.sleep(0)

        assert device.events.empty()
        mqtt_session.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_worker_running(
        self,
        device: CustomDevice,
        attached_client: Client,
        caplog: pytest.LogCaptureFixture,
    ):
        attached_client.detach()

        with caplog.at_level(logging.WARNING):
            await device.message(SWITCH_COMMAND, b"ON")
            await wait_until(lambda: "Failed to publish state" in caplog.text)

        assert not device.worker.done()

    @pytest.mark.asyncio
    async def test_stopped_worker_rejects_commands(self, device: CustomDevice):
        _ = device.worker.cancel()
        _ = await asyncio.gather(device.worker, return_exceptions=True)

        _ = await expect_async_exception(device.message(SWITCH_COMMAND, b"ON"), CustomDeviceError)


@pytest.mark.asyncio
async def test_raw_handler_logs_events(attached_client: Client, caplog: pytest.LogCaptureFixture):
    handler = raw_handler(attached_client)
    assert handler.consumer_task is not None
    try:
        with caplog.at_level(logging.INFO):
            await handler.connected(True)
            await handler.message("switch/x/set", b"ON")
            await wait_until(lambda: "Event: message on switch/x/set" in caplog.text)
    finally:
        _ = handler.consumer_task.cancel()

    assert "ConnectionEvent(state=True)" in caplog.text
