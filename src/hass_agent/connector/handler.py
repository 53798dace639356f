"""Contract between the connector and device implementations."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from hass_agent.connector.client import Client
from hass_agent.connector.errors import AgentError
from hass_agent.logging_abstraction import get_logger

__all__ = [
    "ConnectionEvent",
    "ConnectorHandler",
    "ConsumerStoppedError",
    "Event",
    "EventBasedHandler",
    "MessageEvent",
    "RestartedEvent",
    "event_based",
]

logger = get_logger(__name__)

DEFAULT_EVENT_QUEUE_SIZE = 8


@runtime_checkable
class ConnectorHandler(Protocol):
    """Callbacks the connector invokes, one at a time, in event order.

    Raising from ``connected`` or ``restarted`` stops the connector. Raising
    from ``message`` drops the session if the message was delivered with
    QoS 1 or 2 and is ignored for QoS 0.

    Callbacks run on the connector's task: they must finish in bounded time.
    Long-running device behavior belongs in a separate task (see
    ``EventBasedHandler``).
    """

    async def connected(self, state: bool) -> None:
        """Connection state changed.

        May be called repeatedly with the same state and must tolerate that.
        """
        ...

    async def restarted(self) -> None:
        """Home Assistant restarted; every entity must be announced again."""
        ...

    async def message(self, topic: str, payload: bytes) -> None:
        """A message arrived on a subscribed topic (relative to the discovery prefix)."""
        ...


@dataclass(frozen=True, slots=True)
class ConnectionEvent:
    state: bool


@dataclass(frozen=True, slots=True)
class RestartedEvent:
    pass


@dataclass(frozen=True, slots=True)
class MessageEvent:
    topic: str
    payload: bytes


Event = ConnectionEvent | RestartedEvent | MessageEvent
EventConsumer = Callable[[asyncio.Queue[Event], Client], Awaitable[None]]


class ConsumerStoppedError(AgentError):
    """The task consuming handler events is no longer running."""


class EventBasedHandler:
    """Forwards every callback as an ``Event`` into a bounded queue.

    ``consumer_task`` is the task reading the queue; once it has finished,
    callbacks raise ``ConsumerStoppedError`` instead of blocking on a queue
    nobody drains.
    """

    lp: str = "events:"

    def __init__(self, events: asyncio.Queue[Event], consumer_task: asyncio.Task[None] | None = None) -> None:
        self.events: asyncio.Queue[Event] = events
        self.consumer_task: asyncio.Task[None] | None = consumer_task

    async def _send(self, event: Event) -> None:
        if self.consumer_task is not None and self.consumer_task.done():
            logger.warning("%s Dropping %s, event consumer has stopped", self.lp, event)
            msg = "event consumer has stopped"
            raise ConsumerStoppedError(msg)
        await self.events.put(event)

    async def connected(self, state: bool) -> None:
        await self._send(ConnectionEvent(state))

    async def restarted(self) -> None:
        await self._send(RestartedEvent())

    async def message(self, topic: str, payload: bytes) -> None:
        await self._send(MessageEvent(topic, payload))


def event_based(
    client: Client,
    consumer: EventConsumer,
    maxsize: int = DEFAULT_EVENT_QUEUE_SIZE,
) -> EventBasedHandler:
    """Spawn ``consumer(events, client)`` and return a handler feeding it.

    Must be called with a running event loop, e.g. from the handler factory
    passed to ``Connector``.
    """
    events: asyncio.Queue[Event] = asyncio.Queue(maxsize=maxsize)
    task = asyncio.create_task(consumer(events, client), name="event_consumer")
    return EventBasedHandler(events, task)
