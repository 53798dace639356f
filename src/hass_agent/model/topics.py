"""Topic layout of the Home Assistant MQTT discovery protocol.

Every entity lives under ``{component}/[{node_id}/]{object_id}/``, with
``config`` (discovery), ``state`` and ``set`` (command) leaves. The functions
here return topics relative to the discovery prefix; ``with_base`` adds it.
All functions are pure.
"""

from __future__ import annotations

from hass_agent.model.component import Component, ComponentKind

__all__ = [
    "CONFIG_SUFFIX",
    "COMMAND_SUFFIX",
    "STATE_SUFFIX",
    "command_topic",
    "config_topic",
    "entity_topic",
    "state_topic",
    "strip_base",
    "with_base",
]

CONFIG_SUFFIX = "config"
STATE_SUFFIX = "state"
COMMAND_SUFFIX = "set"


def _kind(component: Component | ComponentKind) -> ComponentKind:
    return component.kind if isinstance(component, Component) else component


def entity_topic(component: Component | ComponentKind, node_id: str | None, object_id: str, suffix: str) -> str:
    kind = _kind(component)
    if node_id is not None:
        return f"{kind.value}/{node_id}/{object_id}/{suffix}"
    return f"{kind.value}/{object_id}/{suffix}"


def config_topic(component: Component | ComponentKind, node_id: str | None, object_id: str) -> str:
    return entity_topic(component, node_id, object_id, CONFIG_SUFFIX)


def state_topic(component: Component | ComponentKind, node_id: str | None, object_id: str) -> str | None:
    """State topic, or ``None`` if the component does not report state (buttons)."""
    if not _kind(component).has_state:
        return None
    return entity_topic(component, node_id, object_id, STATE_SUFFIX)


def command_topic(component: Component | ComponentKind, node_id: str | None, object_id: str) -> str | None:
    """Command topic, or ``None`` if the component accepts no commands (sensors)."""
    if not _kind(component).has_command:
        return None
    return entity_topic(component, node_id, object_id, COMMAND_SUFFIX)


def with_base(base: str, topic: str) -> str:
    return f"{base}/{topic}"


def strip_base(base: str, topic: str) -> str | None:
    """Inverse of ``with_base``; ``None`` when ``topic`` is outside the ``base`` namespace."""
    prefix = f"{base}/"
    if not topic.startswith(prefix) or len(topic) == len(prefix):
        return None
    return topic[len(prefix) :]
