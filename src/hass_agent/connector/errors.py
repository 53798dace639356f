"""Exception hierarchy of the connector.

Operation level errors (``SerializationError``, ``TransportError``) are always
raised to the caller of the client operation. ``HandlerError`` is raised out
of ``Connector.run()`` and ends it.
"""

from __future__ import annotations

__all__ = [
    "AgentError",
    "ClientError",
    "ConfigError",
    "HandlerError",
    "SerializationError",
    "TransportError",
]


class AgentError(Exception):
    """Base class for all errors raised by the agent."""


class ConfigError(AgentError):
    """Invalid connector configuration.

    Attributes:
        option: Name of the offending option
        value: The rejected value

    """

    def __init__(self, option: str, value: object, reason: str) -> None:
        self.option: str = option
        self.value: object = value
        super().__init__(f"Invalid {option}={value!r}: {reason}")


class ClientError(AgentError):
    """A client operation failed.

    Attributes:
        topic: Topic the operation targeted

    """

    def __init__(self, message: str, topic: str) -> None:
        self.topic: str = topic
        super().__init__(f"{message} (topic: {topic})")


class SerializationError(ClientError):
    """The discovery document could not be encoded."""

    def __init__(self, topic: str) -> None:
        super().__init__("serialization failure", topic)


class TransportError(ClientError):
    """The MQTT session rejected or failed the operation.

    Raised when:
    - No session is attached (connector disconnected)
    - The publish/subscribe request could not be queued
    - The broker did not acknowledge an awaited request

    Attributes:
        operation: "publish" or "subscribe"
        reason: Transport level failure description

    """

    def __init__(self, operation: str, topic: str, reason: str) -> None:
        self.operation: str = operation
        self.reason: str = reason
        super().__init__(f"{operation} failed: {reason}", topic)


class HandlerError(AgentError):
    """A connection lifecycle callback of the handler failed.

    The original exception is chained as ``__cause__``.

    Attributes:
        callback: Name of the failing callback ("connected" or "restarted")

    """

    def __init__(self, callback: str) -> None:
        self.callback: str = callback
        super().__init__(f"handler callback '{callback}' failed")
