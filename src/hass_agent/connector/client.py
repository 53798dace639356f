"""Session client handed to device handlers.

A ``Client`` is a long-lived handle: the connector attaches the live
``aiomqtt.Client`` to it after every successful (re)connect and detaches it
when the session ends. Device tasks may keep the handle and call it from any
task; calls made while detached fail with ``TransportError``.

Topics passed to the client are relative to the discovery prefix
(``options.topic_base``); the client adds the prefix.
"""

from __future__ import annotations

import asyncio
from enum import IntEnum

import aiomqtt

from hass_agent.connector.errors import SerializationError, TransportError
from hass_agent.logging_abstraction import get_logger
from hass_agent.model import topics
from hass_agent.model.device_id import DeviceId
from hass_agent.model.discovery import Discovery

__all__ = ["Client", "Payload", "QoS"]

logger = get_logger(__name__)

Payload = str | bytes | bytearray


class QoS(IntEnum):
    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


class Client:
    """Publish/subscribe facade over the current MQTT session."""

    lp: str = "client:"

    def __init__(self, base_topic: str) -> None:
        self.base_topic: str = base_topic
        self._mqtt: aiomqtt.Client | None = None
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def is_connected(self) -> bool:
        return self._mqtt is not None

    def attach(self, mqtt: aiomqtt.Client) -> None:
        """Bind a freshly connected session. Called by the connector."""
        self._mqtt = mqtt

    def detach(self) -> None:
        """Forget the session and drop state publishes still waiting for an ack."""
        self._mqtt = None
        for task in list(self._pending):
            _ = task.cancel()
        self._pending.clear()

    def topic(self, topic: str) -> str:
        """Absolute topic for a topic relative to the discovery prefix."""
        return topics.with_base(self.base_topic, topic)

    def _session(self, operation: str, topic: str) -> aiomqtt.Client:
        if self._mqtt is None:
            logger.warning("%s Cannot %s on %s: not connected", self.lp, operation, topic)
            raise TransportError(operation, topic, "not connected")
        return self._mqtt

    async def publish(
        self,
        topic: str,
        payload: Payload,
        qos: QoS = QoS.AT_LEAST_ONCE,
        retain: bool = False,
    ) -> None:
        """Publish and wait until the transport has completed the publish."""
        full_topic = self.topic(topic)
        await self._publish(full_topic, payload, qos, retain)

    async def _publish(self, full_topic: str, payload: Payload, qos: QoS, retain: bool) -> None:
        lp = f"{self.lp}publish:"
        mqtt = self._session("publish", full_topic)
        try:
            await mqtt.publish(full_topic, payload, qos=int(qos), retain=retain)
        except aiomqtt.MqttError as err:
            logger.warning("%s [MqttError] %s -> %s", lp, full_topic, err)
            raise TransportError("publish", full_topic, str(err)) from err

    async def update_state(self, topic: str, payload: Payload) -> None:
        """Publish a state update (QoS 1, not retained) without awaiting the broker ack.

        The publish is handed to the transport and this returns as soon as it
        is queued. A failure to queue is raised here; a failure after that is
        only logged.
        """
        lp = f"{self.lp}update_state:"
        full_topic = self.topic(topic)
        mqtt = self._session("publish", full_topic)
        logger.debug("%s Update state on %s", lp, full_topic)

        task = asyncio.create_task(
            mqtt.publish(full_topic, payload, qos=int(QoS.AT_LEAST_ONCE), retain=False),
            name=f"update_state:{full_topic}",
        )
        # one loop iteration lets the publish reach the transport's queue
        await asyncio.sleep(0)
        if not task.done():
            self._pending.add(task)
            task.add_done_callback(self._on_state_published)
            return

        if task.cancelled():
            raise TransportError("publish", full_topic, "cancelled")
        err = task.exception()
        if isinstance(err, aiomqtt.MqttError):
            logger.warning("%s Failed to publish state on %s: %s", lp, full_topic, err)
            raise TransportError("publish", full_topic, str(err)) from err
        if err is not None:
            raise err

    def _on_state_published(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            logger.warning("%s Failed to publish state (%s): %s", self.lp, task.get_name(), err)

    async def announce(self, device_id: DeviceId, discovery: Discovery) -> None:
        """Publish a discovery document on the entity's config topic.

        Unlike ``update_state`` this waits for the transport to confirm the
        publish (QoS 1, not retained).
        """
        lp = f"{self.lp}announce:"
        config_topic = device_id.config_topic(self.base_topic)
        try:
            payload = discovery.to_json()
        except (TypeError, ValueError) as err:
            logger.warning("%s Failed to encode discovery for %s: %s", lp, device_id.id, err)
            raise SerializationError(config_topic) from err

        logger.info(
            "%s Announcing %s on %s",
            lp,
            device_id.id,
            config_topic,
            extra={"discovery": payload.decode()},
        )
        await self._publish(config_topic, payload, QoS.AT_LEAST_ONCE, retain=False)

    async def subscribe(self, topic: str, qos: QoS = QoS.AT_LEAST_ONCE) -> None:
        lp = f"{self.lp}subscribe:"
        full_topic = self.topic(topic)
        mqtt = self._session("subscribe", full_topic)
        logger.info("%s Subscribing to: %s", lp, full_topic)
        try:
            _ = await mqtt.subscribe(full_topic, qos=int(qos))
        except aiomqtt.MqttError as err:
            logger.warning("%s [MqttError] %s -> %s", lp, full_topic, err)
            raise TransportError("subscribe", full_topic, str(err)) from err
