from __future__ import annotations

from dataclasses import dataclass

from hass_agent.model import topics
from hass_agent.model.component import Component

__all__ = ["DeviceId"]


@dataclass(frozen=True, slots=True)
class DeviceId:
    """Identity of one Home Assistant entity.

    Topics are derived on every call and never stored. Changing any of
    ``component``, ``node_id`` or ``id`` moves the entity to new topics and
    leaves the previous discovery entry orphaned in Home Assistant.

    Every topic method takes an optional discovery prefix; without it the
    topic is relative to the prefix, which is the form the connector hands to
    ``ConnectorHandler.message`` and the form ``Client`` methods accept.
    """

    id: str
    component: Component
    node_id: str | None = None

    def __post_init__(self) -> None:
        if not self.id or "/" in self.id:
            msg = f"invalid object id: {self.id!r}"
            raise ValueError(msg)
        if self.node_id is not None and (not self.node_id or "/" in self.node_id):
            msg = f"invalid node id: {self.node_id!r}"
            raise ValueError(msg)

    @classmethod
    def with_node_id(cls, id: str, component: Component, node_id: str) -> DeviceId:
        return cls(id=id, component=component, node_id=node_id)

    def config_topic(self, base: str | None = None) -> str:
        topic = topics.config_topic(self.component, self.node_id, self.id)
        return topics.with_base(base, topic) if base is not None else topic

    def state_topic(self, base: str | None = None) -> str | None:
        topic = topics.state_topic(self.component, self.node_id, self.id)
        if topic is None or base is None:
            return topic
        return topics.with_base(base, topic)

    def command_topic(self, base: str | None = None) -> str | None:
        topic = topics.command_topic(self.component, self.node_id, self.id)
        if topic is None or base is None:
            return topic
        return topics.with_base(base, topic)

    def __str__(self) -> str:
        if self.node_id is not None:
            return f"{self.component}/{self.node_id}/{self.id}"
        return f"{self.component}/{self.id}"
