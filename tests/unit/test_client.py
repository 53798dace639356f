"""Tests for the session Client handed to device handlers."""

from __future__ import annotations

import asyncio
import json
import logging
from unittest.mock import AsyncMock, patch

import aiomqtt
import pytest

from hass_agent.connector import Client, QoS, SerializationError, TransportError
from hass_agent.model import BinarySensorClass, Component, Device, DeviceId, Discovery
from tests.helpers.mqtt import expect_async_exception, wait_until


@pytest.fixture
def motion_id() -> DeviceId:
    return DeviceId("motion-1", Component.binary_sensor(BinarySensorClass.MOTION))


@pytest.fixture
def motion_discovery(motion_id: DeviceId) -> Discovery:
    return Discovery.build(motion_id, Device(name="Hallway"), base="homeassistant")


class TestDetachedClient:
    @pytest.mark.asyncio
    async def test_publish_without_session(self):
        client = Client("homeassistant")

        err = await expect_async_exception(client.publish("switch/x/state", "ON"), TransportError)

        assert err.reason == "not connected"
        assert err.topic == "homeassistant/switch/x/state"

    @pytest.mark.asyncio
    async def test_update_state_without_session(self):
        client = Client("homeassistant")

        _ = await expect_async_exception(client.update_state("switch/x/state", "ON"), TransportError)

    @pytest.mark.asyncio
    async def test_subscribe_without_session(self):
        client = Client("homeassistant")

        err = await expect_async_exception(client.subscribe("switch/x/set"), TransportError)

        assert err.operation == "subscribe"

    @pytest.mark.asyncio
    async def test_detach_forgets_session(self, attached_client: Client, mqtt_session: AsyncMock):
        attached_client.detach()

        assert not attached_client.is_connected
        _ = await expect_async_exception(attached_client.publish("switch/x/state", "ON"), TransportError)
        mqtt_session.publish.assert_not_awaited()


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish_prefixes_base(self, attached_client: Client, mqtt_session: AsyncMock):
        await attached_client.publish("sensor/t1/state", "21.5", QoS.AT_MOST_ONCE, retain=True)

        mqtt_session.publish.assert_awaited_once_with("homeassistant/sensor/t1/state", "21.5", qos=0, retain=True)

    @pytest.mark.asyncio
    async def test_publish_failure_raises_transport_error(self, attached_client: Client, mqtt_session: AsyncMock):
        failure = aiomqtt.MqttError("Could not publish message")
        mqtt_session.publish.side_effect = failure

        err = await expect_async_exception(attached_client.publish("sensor/t1/state", "21.5"), TransportError)

        assert err.__cause__ is failure
        assert err.operation == "publish"
        assert "Could not publish message" in str(err)

    @pytest.mark.asyncio
    async def test_subscribe_prefixes_base(self, attached_client: Client, mqtt_session: AsyncMock):
        await attached_client.subscribe("switch/x/set", QoS.EXACTLY_ONCE)

        mqtt_session.subscribe.assert_awaited_once_with("homeassistant/switch/x/set", qos=2)

    @pytest.mark.asyncio
    async def test_subscribe_failure_raises_transport_error(self, attached_client: Client, mqtt_session: AsyncMock):
        mqtt_session.subscribe.side_effect = aiomqtt.MqttError("Could not subscribe")

        err = await expect_async_exception(attached_client.subscribe("switch/x/set"), TransportError)

        assert err.topic == "homeassistant/switch/x/set"


class TestUpdateState:
    @pytest.mark.asyncio
    async def test_publishes_qos1_not_retained(self, attached_client: Client, mqtt_session: AsyncMock):
        await attached_client.update_state("switch/x/state", "ON")

        await wait_until(lambda: mqtt_session.publish.await_count == 1)
        mqtt_session.publish.assert_awaited_once_with("homeassistant/switch/x/state", "ON", qos=1, retain=False)

    @pytest.mark.asyncio
    async def test_does_not_wait_for_ack(self, attached_client: Client, mqtt_session: AsyncMock):
        acked = asyncio.Event()

        async def publish_until_acked(*_args: object, **_kwargs: object) -> None:
            _ = await acked.wait()

        mqtt_session.publish.side_effect = publish_until_acked

        await asyncio.wait_for(attached_client.update_state("switch/x/state", "ON"), timeout=1)

        assert not acked.is_set()
        acked.set()
        await wait_until(lambda: not attached_client._pending)

    @pytest.mark.asyncio
    async def test_immediate_failure_raised(self, attached_client: Client, mqtt_session: AsyncMock):
        failure = aiomqtt.MqttError("Could not publish message")
        mqtt_session.publish.side_effect = failure

        err = await expect_async_exception(attached_client.update_state("switch/x/state", "ON"), TransportError)

        assert err.__cause__ is failure

    @pytest.mark.asyncio
    async def test_late_failure_only_logged(
        self,
        attached_client: Client,
        mqtt_session: AsyncMock,
        caplog: pytest.LogCaptureFixture,
    ):
        acked = asyncio.Event()

        async def fail_after_ack(*_args: object, **_kwargs: object) -> None:
            _ = await acked.wait()
            raise aiomqtt.MqttError("Operation timed out")

        mqtt_session.publish.side_effect = fail_after_ack

        with caplog.at_level(logging.WARNING):
            await attached_client.update_state("switch/x/state", "ON")
            acked.set()
            await wait_until(lambda: not attached_client._pending)

        assert "Failed to publish state" in caplog.text

    @pytest.mark.asyncio
    async def test_detach_cancels_pending(self, attached_client: Client, mqtt_session: AsyncMock):
        never = asyncio.Event()

        async def publish_forever(*_args: object, **_kwargs: object) -> None:
            _ = await never.wait()

        mqtt_session.publish.side_effect = publish_forever
        await attached_client.update_state("switch/x/state", "ON")
        pending = set(attached_client._pending)
        assert len(pending) == 1

        attached_client.detach()
        _ = await asyncio.gather(*pending, return_exceptions=True)

        assert all(task.cancelled() for task in pending)


class TestAnnounce:
    @pytest.mark.asyncio
    async def test_announce_publishes_config(
        self,
        attached_client: Client,
        mqtt_session: AsyncMock,
        motion_id: DeviceId,
        motion_discovery: Discovery,
    ):
        await attached_client.announce(motion_id, motion_discovery)

        mqtt_session.publish.assert_awaited_once()
        call = mqtt_session.publish.await_args
        assert call.args[0] == "homeassistant/binary_sensor/motion-1/config"
        assert call.kwargs == {"qos": 1, "retain": False}
        document = json.loads(call.args[1])
        assert document["device_class"] == "motion"
        assert document["device"]["name"] == "Hallway"
        assert document["state_topic"] == "homeassistant/binary_sensor/motion-1/state"
        assert "command_topic" not in document

    @pytest.mark.asyncio
    async def test_announce_transport_failure(
        self,
        attached_client: Client,
        mqtt_session: AsyncMock,
        motion_id: DeviceId,
        motion_discovery: Discovery,
    ):
        mqtt_session.publish.side_effect = aiomqtt.MqttError("Could not publish message")

        err = await expect_async_exception(attached_client.announce(motion_id, motion_discovery), TransportError)

        assert err.topic == "homeassistant/binary_sensor/motion-1/config"

    @pytest.mark.asyncio
    async def test_announce_serialization_failure(
        self,
        attached_client: Client,
        mqtt_session: AsyncMock,
        motion_id: DeviceId,
        motion_discovery: Discovery,
    ):
        with patch.object(Discovery, "to_json", side_effect=ValueError("not encodable")):
            err = await expect_async_exception(
                attached_client.announce(motion_id, motion_discovery),
                SerializationError,
            )

        assert err.topic == "homeassistant/binary_sensor/motion-1/config"
        mqtt_session.publish.assert_not_awaited()
