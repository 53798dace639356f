"""Shared fixtures for unit tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from hass_agent.connector import Client, ConnectorOptions
from tests.helpers.mqtt import RecordingHandler


@pytest.fixture
def options() -> ConnectorOptions:
    return ConnectorOptions(host="broker.local", client_id="test-client")


@pytest.fixture
def recording_handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def mqtt_session() -> AsyncMock:
    """Mock of a connected aiomqtt.Client for client level tests."""
    session = AsyncMock()
    session.publish = AsyncMock()
    session.subscribe = AsyncMock()
    return session


@pytest.fixture
def attached_client(mqtt_session: AsyncMock) -> Client:
    client = Client("homeassistant")
    client.attach(mqtt_session)
    return client
