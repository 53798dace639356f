"""Connection lifecycle of the agent.

``Connector.run()`` keeps one MQTT session alive for as long as it runs:

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED -> ...

Each pass through the loop opens a new ``aiomqtt.Client``. When a session
ends for any reason (connect refused, network loss, protocol error, or a
forced disconnect) the handler is told ``connected(False)`` and the loop
sleeps a fixed delay before connecting again. There is no backoff and no
attempt limit; a supervisor restarting the process is expected to cover
long outages.

Handler callbacks are awaited one at a time, in the order the transport
delivered the events.
"""

from __future__ import annotations

import asyncio
import math
import ssl
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import aiomqtt

from hass_agent.connector.client import Client, QoS
from hass_agent.connector.errors import HandlerError
from hass_agent.connector.handler import ConnectorHandler
from hass_agent.connector.options import AvailabilityOptions, ConnectorOptions
from hass_agent.const import (
    AVAILABILITY_OFFLINE_MSG,
    AVAILABILITY_ONLINE_MSG,
    HASS_AGENT_RECONNECT_DELAY,
    HASS_BIRTH_MSG,
    INCOMING_QUEUE_SIZE,
)
from hass_agent.correlation import correlation_context
from hass_agent.logging_abstraction import get_logger
from hass_agent.model.topics import strip_base

__all__ = ["ConnectionState", "Connector", "HandlerFactory"]

logger = get_logger(__name__)

HandlerFactory = Callable[[Client], ConnectorHandler]

_DEFAULT_RECONNECT_DELAY = 5.0


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def _payload_bytes(payload: Any) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, bytes | bytearray):
        return bytes(payload)
    return str(payload).encode()


class Connector:
    """Drives the MQTT session and dispatches its events to a handler.

    ``handler_factory`` is called once, inside ``run()``, with the shared
    ``Client``; it returns the ``ConnectorHandler`` receiving all callbacks.
    """

    lp: str = "connector:"

    def __init__(
        self,
        options: ConnectorOptions,
        handler_factory: HandlerFactory,
        *,
        availability: AvailabilityOptions | str | None = None,
        reconnect_delay: float | None = None,
    ) -> None:
        self.options: ConnectorOptions = options
        self.client: Client = Client(options.topic_base)
        self.state: ConnectionState = ConnectionState.DISCONNECTED
        self.reconnect_delay: float = self._get_reconnect_delay(reconnect_delay)
        self._handler_factory: HandlerFactory = handler_factory
        self._availability: AvailabilityOptions | None = None
        if availability is not None:
            _ = self.availability(availability)

    def availability(self, availability: AvailabilityOptions | str) -> Connector:
        """Enable the availability topic (online marker plus offline last will)."""
        if isinstance(availability, str):
            availability = AvailabilityOptions(topic=availability)
        self._availability = availability
        return self

    def _get_reconnect_delay(self, delay: float | None) -> float:
        if delay is None:
            delay = HASS_AGENT_RECONNECT_DELAY
        if delay < 0 or not math.isfinite(delay):
            logger.debug(
                "%s Reconnect delay %s is not usable, which is probably a typo, setting to %s...",
                self.lp,
                delay,
                _DEFAULT_RECONNECT_DELAY,
            )
            return _DEFAULT_RECONNECT_DELAY
        return delay

    def _new_session(self) -> aiomqtt.Client:
        opts = self.options
        will = None
        if self._availability is not None:
            will = aiomqtt.Will(
                topic=self._availability.topic,
                payload=AVAILABILITY_OFFLINE_MSG,
                qos=int(QoS.AT_LEAST_ONCE),
                retain=True,
            )
        return aiomqtt.Client(
            hostname=opts.host,
            port=opts.port,
            username=opts.username,
            password=opts.password,
            identifier=opts.client_id,
            keepalive=max(1, round(opts.keep_alive)),
            will=will,
            tls_context=ssl.create_default_context() if opts.tls else None,
            max_queued_incoming_messages=INCOMING_QUEUE_SIZE,
        )

    async def run(self) -> None:
        """Run until a lifecycle callback fails.

        Raises:
            HandlerError: ``connected`` or ``restarted`` raised; the original
                exception is its ``__cause__``

        """
        lp = f"{self.lp}run:"
        handler = self._handler_factory(self.client)
        logger.info(
            "%s Starting connector",
            lp,
            extra={
                "host": self.options.host,
                "port": self.options.port,
                "tls": self.options.tls,
                "client_id": self.options.client_id,
                "topic_base": self.options.topic_base,
            },
        )
        if self._availability is not None:
            logger.info("%s Using availability topic on: %s", lp, self._availability.topic)

        attempt = 0
        while True:
            attempt += 1
            with correlation_context():
                await self._run_session(handler, attempt)
                await self._lifecycle("connected", handler.connected, False)
            logger.info("%s Reconnecting in %s seconds...", lp, self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)

    async def _run_session(self, handler: ConnectorHandler, attempt: int) -> None:
        """Connect once and dispatch events until the session is gone."""
        lp = f"{self.lp}session:"
        self.state = ConnectionState.CONNECTING
        logger.debug("%s Connecting to %s:%s (attempt %d)...", lp, self.options.host, self.options.port, attempt)
        try:
            async with self._new_session() as mqtt:
                if not await self._on_connected(handler, mqtt):
                    logger.info("%s Forcing disconnect", lp)
                    return
                async for message in mqtt.messages:
                    if not await self._dispatch(handler, message):
                        logger.info("%s Forcing disconnect", lp)
                        return
        except aiomqtt.MqttError as err:
            logger.warning("%s Connection failed: %s", lp, err)
        finally:
            self.client.detach()
            self.state = ConnectionState.DISCONNECTED

    async def _on_connected(self, handler: ConnectorHandler, mqtt: aiomqtt.Client) -> bool:
        """Session established; returns ``False`` to force a disconnect."""
        lp = f"{self.lp}connected:"
        self.state = ConnectionState.CONNECTED
        logger.info("%s Connected to MQTT broker: %s port: %s", lp, self.options.host, self.options.port)

        try:
            await mqtt.subscribe(self.options.status_topic, qos=int(QoS.AT_LEAST_ONCE))
        except aiomqtt.MqttError as err:
            logger.warning("%s Failed to subscribe to the status topic %s: %s", lp, self.options.status_topic, err)
            return False

        self.client.attach(mqtt)
        await self._lifecycle("connected", handler.connected, True)

        if self._availability is not None:
            try:
                await mqtt.publish(
                    self._availability.topic,
                    AVAILABILITY_ONLINE_MSG,
                    qos=int(QoS.AT_LEAST_ONCE),
                    retain=True,
                )
            except aiomqtt.MqttError as err:
                logger.warning("%s Failed to announce availability: %s", lp, err)
                return False
        return True

    async def _dispatch(self, handler: ConnectorHandler, message: aiomqtt.Message) -> bool:
        """Route one inbound message; returns ``False`` to force a disconnect."""
        lp = f"{self.lp}rcv:"
        topic = message.topic.value
        payload = _payload_bytes(message.payload)

        with correlation_context():
            if topic == self.options.status_topic:
                status = payload.decode("utf-8", errors="replace")
                logger.info("%s Home Assistant status: %s", lp, status)
                if status == HASS_BIRTH_MSG:
                    await self._lifecycle("restarted", handler.restarted)
                return True

            relative = strip_base(self.options.topic_base, topic)
            if relative is None:
                logger.debug("%s Skipping message outside of %s/: %s", lp, self.options.topic_base, topic)
                return True

            logger.info("%s Message published: %s (len: %d)", lp, topic, len(payload))
            try:
                await handler.message(relative, payload)
            except Exception as err:
                if message.qos != QoS.AT_MOST_ONCE:
                    logger.warning("%s Failed to process message on %s (qos: %s): %s", lp, topic, message.qos, err)
                    return False
                logger.info("%s Failed to process message on %s: %s ... ignoring due to QoS", lp, topic, err)
            return True

    async def _lifecycle(self, name: str, callback: Callable[..., Awaitable[None]], *args: object) -> None:
        try:
            await callback(*args)
        except Exception as err:
            logger.exception("%s Handler callback '%s' failed", self.lp, name)
            raise HandlerError(name) from err
