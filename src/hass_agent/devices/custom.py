"""A device with a motion sensor and a switch.

While the switch is on, the motion sensor flips between detected and clear
every few seconds. Switch commands arrive on the connector's task and are
handed to a worker task through a bounded queue, so the handler never
blocks the connector.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from hass_agent.connector.client import Client, QoS
from hass_agent.connector.errors import AgentError, ClientError
from hass_agent.correlation import ensure_correlation_id
from hass_agent.logging_abstraction import get_logger
from hass_agent.model import BinarySensorClass, Component, Device, DeviceId, Discovery

__all__ = ["CustomDevice", "CustomDeviceError", "Entity", "Refresh", "SwitchCommand"]

logger = get_logger(__name__)

STATE_ON = "ON"
STATE_OFF = "OFF"
MOTION_TOGGLE_INTERVAL = 5.0
EVENT_QUEUE_SIZE = 8


class CustomDeviceError(AgentError):
    """The device worker is gone; commands can no longer be processed."""


@dataclass(frozen=True, slots=True)
class SwitchCommand:
    state: bool


@dataclass(frozen=True, slots=True)
class Refresh:
    """Republish all current states (after a reconnect)."""


@dataclass(frozen=True, slots=True)
class Entity:
    id: DeviceId
    discovery: Discovery


class CustomDevice:
    lp: str = "custom:"

    def __init__(self, client: Client, toggle_interval: float = MOTION_TOGGLE_INTERVAL) -> None:
        self.client: Client = client
        self.toggle_interval: float = toggle_interval
        self.switch_on: bool = False

        device = Device(identifiers=("test-id1",), name="Test Device 1")
        motion_id = DeviceId("test-id10-motion", Component.binary_sensor(BinarySensorClass.MOTION))
        switch_id = DeviceId("test-id10-switch", Component.switch())
        self.motion: Entity = Entity(motion_id, Discovery.build(motion_id, device, base=client.base_topic))
        self.switch: Entity = Entity(switch_id, Discovery.build(switch_id, device, base=client.base_topic))

        self.events: asyncio.Queue[SwitchCommand | Refresh] = asyncio.Queue(maxsize=EVENT_QUEUE_SIZE)
        self._toggler: asyncio.Task[None] | None = None
        self.worker: asyncio.Task[None] = asyncio.create_task(self._run_worker(), name="custom_device_worker")

    async def subscribe(self) -> None:
        command_topic = self.switch.id.command_topic()
        assert command_topic is not None, "switches always have a command topic"
        await self.client.subscribe(command_topic, QoS.AT_LEAST_ONCE)

    async def announce(self) -> None:
        for entity in (self.motion, self.switch):
            await self.client.announce(entity.id, entity.discovery)

    # ConnectorHandler

    async def connected(self, state: bool) -> None:
        logger.info("%s Connected: %s", self.lp, state)
        if state:
            await self.subscribe()
            await self.announce()
            await self._send(Refresh())

    async def restarted(self) -> None:
        logger.info("%s Home Assistant restarted, announcing again", self.lp)
        await self.announce()

    async def message(self, topic: str, payload: bytes) -> None:
        logger.info("%s message - topic: %s, payload: %r", self.lp, topic, payload.decode(errors="replace"))
        if topic == self.switch.id.command_topic():
            command = SwitchCommand(payload == STATE_ON.encode())
            logger.info("%s Dispatching command: %s", self.lp, command)
            await self._send(command)

    # worker side

    async def _send(self, event: SwitchCommand | Refresh) -> None:
        if self.worker.done():
            msg = "device worker has stopped"
            raise CustomDeviceError(msg)
        await self.events.put(event)

    async def _publish_state(self, entity: Entity, state: bool) -> None:
        topic = entity.id.state_topic()
        assert topic is not None, f"{entity.id} has no state topic"
        try:
            await self.client.update_state(topic, STATE_ON if state else STATE_OFF)
        except ClientError as err:
            logger.warning("%s Failed to publish state of %s: %s", self.lp, entity.id, err)

    async def _run_worker(self) -> None:
        ensure_correlation_id()
        try:
            while True:
                event = await self.events.get()
                if isinstance(event, Refresh):
                    await self._publish_state(self.switch, self.switch_on)
                    if not self.switch_on:
                        await self._publish_state(self.motion, False)
                    continue

                logger.info("%s Switch toggled (%s)", self.lp, event.state)
                self.switch_on = event.state
                await self._publish_state(self.switch, event.state)
                if event.state and self._toggler is None:
                    self._toggler = asyncio.create_task(self._toggle_motion(), name="custom_device_motion")
                elif not event.state and self._toggler is not None:
                    _ = self._toggler.cancel()
                    self._toggler = None
        finally:
            if self._toggler is not None:
                _ = self._toggler.cancel()

    async def _toggle_motion(self) -> None:
        state = True
        while True:
            await self._publish_state(self.motion, state)
            state = not state
            await asyncio.sleep(self.toggle_interval)
