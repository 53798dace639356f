"""Home Assistant MQTT discovery documents.

Encoding follows what Home Assistant expects from a discovery payload:

- ``name`` and ``device_class`` are always emitted, as ``null`` when unset.
  Home Assistant treats a missing ``name`` as "use the default name" and an
  explicit ``null`` as "use only the device name", so the two must not be
  conflated.
- every other optional field is left out entirely when unset,
- ``availability`` is left out when empty and ``availability_mode`` when it
  is the default ``latest``.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
)

from hass_agent.model.device_id import DeviceId

__all__ = [
    "Availability",
    "AvailabilityMode",
    "Device",
    "Discovery",
    "StateClass",
]

# keys that carry meaning when null, see module docstring
_NULLABLE_KEYS = frozenset({"name", "device_class"})


def _prune(data: dict[str, Any], keep_null: frozenset[str] = frozenset()) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None or k in keep_null}


class StateClass(StrEnum):
    MEASUREMENT = "measurement"
    TOTAL = "total"
    TOTAL_INCREASING = "total_increasing"


class AvailabilityMode(StrEnum):
    ALL = "all"
    ANY = "any"
    LATEST = "latest"


class Device(BaseModel):
    """The physical device an entity belongs to.

    Several entities share one ``Device``; the model is immutable, so a single
    instance can be passed to every ``Discovery.build`` call.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    identifiers: tuple[str, ...] = ()
    name: str | None = None
    base_topic: str | None = Field(default=None, alias="~")
    sw_version: str | None = Field(default=None, validation_alias=AliasChoices("sw_version", "sw"))
    support_url: str | None = Field(default=None, validation_alias=AliasChoices("support_url", "url"))

    @model_serializer(mode="wrap")
    def serialize_model(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = _prune(handler(self), keep_null=frozenset({"name"}))
        if not data.get("identifiers"):
            data.pop("identifiers", None)
        return data


class Availability(BaseModel):
    """One entry of the discovery ``availability`` list."""

    model_config = ConfigDict(frozen=True)

    topic: str
    payload_available: str | None = None
    payload_not_available: str | None = None
    value_template: str | None = None

    @model_serializer(mode="wrap")
    def serialize_model(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        return _prune(handler(self))


class Discovery(BaseModel):
    """Discovery payload published to an entity's ``config`` topic."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    unique_id: str | None = None
    device: Device | None = None
    device_class: str | None = None
    state_class: StateClass | None = None
    state_topic: str | None = None
    command_topic: str | None = None
    unit_of_measurement: str | None = None
    value_template: str | None = None
    command_template: str | None = None
    enabled_by_default: bool | None = None
    availability: tuple[Availability, ...] = ()
    availability_mode: AvailabilityMode = AvailabilityMode.LATEST

    @model_serializer(mode="wrap")
    def serialize_model(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = _prune(handler(self), keep_null=_NULLABLE_KEYS)
        if not data.get("availability"):
            data.pop("availability", None)
        if data.get("availability_mode") == AvailabilityMode.LATEST:
            del data["availability_mode"]
        return data

    @classmethod
    def build(
        cls,
        device_id: DeviceId,
        device: Device | None,
        *,
        base: str,
        name: str | None = None,
        unique_id: str | None = None,
        device_class: str | None = None,
        state_class: StateClass | None = None,
        unit_of_measurement: str | None = None,
        value_template: str | None = None,
        command_template: str | None = None,
        enabled_by_default: bool | None = None,
        availability: tuple[Availability, ...] | list[Availability] = (),
        availability_mode: AvailabilityMode = AvailabilityMode.LATEST,
    ) -> Discovery:
        """Derive a document from an entity identity.

        ``unique_id`` defaults to the entity id and ``device_class`` to the
        class carried by the component. State and command topics are only set
        for components that support them.
        """
        if device_class is None and device_id.component.device_class is not None:
            device_class = device_id.component.device_class.value
        return cls(
            name=name,
            unique_id=unique_id if unique_id is not None else device_id.id,
            device=device,
            device_class=device_class,
            state_class=state_class,
            state_topic=device_id.state_topic(base),
            command_topic=device_id.command_topic(base),
            unit_of_measurement=unit_of_measurement,
            value_template=value_template,
            command_template=command_template,
            enabled_by_default=enabled_by_default,
            availability=tuple(availability),
            availability_mode=availability_mode,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode()

    @classmethod
    def from_json(cls, raw: str | bytes) -> Discovery:
        return cls.model_validate_json(raw)
