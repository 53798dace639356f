"""Logs every connector event; the smallest possible device."""

from __future__ import annotations

import asyncio

from hass_agent.connector.client import Client
from hass_agent.connector.handler import Event, EventBasedHandler, MessageEvent, event_based
from hass_agent.correlation import ensure_correlation_id
from hass_agent.logging_abstraction import get_logger

__all__ = ["log_events", "raw_handler"]

logger = get_logger(__name__)


async def log_events(events: asyncio.Queue[Event], _client: Client) -> None:
    ensure_correlation_id()
    while True:
        event = await events.get()
        if isinstance(event, MessageEvent):
            logger.info("Event: message on %s (len: %d)", event.topic, len(event.payload))
        else:
            logger.info("Event: %s", event)


def raw_handler(client: Client) -> EventBasedHandler:
    return event_based(client, log_events)
