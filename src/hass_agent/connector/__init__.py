"""MQTT session management for Home Assistant device implementations.

- connector.py: Connector, the connection lifecycle loop
- client.py: Client, the publish/subscribe facade handed to handlers
- handler.py: ConnectorHandler contract and the queue based EventBasedHandler
- options.py: ConnectorOptions and AvailabilityOptions
- errors.py: exception hierarchy
"""

from .client import Client, QoS
from .connector import ConnectionState, Connector, HandlerFactory
from .errors import AgentError, ClientError, ConfigError, HandlerError, SerializationError, TransportError
from .handler import (
    ConnectionEvent,
    ConnectorHandler,
    ConsumerStoppedError,
    Event,
    EventBasedHandler,
    MessageEvent,
    RestartedEvent,
    event_based,
)
from .options import AvailabilityOptions, ConnectorOptions

__all__ = [
    "AgentError",
    "AvailabilityOptions",
    "Client",
    "ClientError",
    "ConfigError",
    "ConnectionEvent",
    "ConnectionState",
    "Connector",
    "ConnectorHandler",
    "ConnectorOptions",
    "ConsumerStoppedError",
    "Event",
    "EventBasedHandler",
    "HandlerError",
    "HandlerFactory",
    "MessageEvent",
    "QoS",
    "RestartedEvent",
    "SerializationError",
    "TransportError",
    "event_based",
]
