"""Home Assistant MQTT components and their device classes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

__all__ = [
    "BinarySensorClass",
    "ButtonClass",
    "Component",
    "ComponentKind",
    "DeviceClass",
    "SensorClass",
    "SwitchClass",
]


class ComponentKind(StrEnum):
    """Component names as they appear in discovery topics."""

    BINARY_SENSOR = "binary_sensor"
    BUTTON = "button"
    SENSOR = "sensor"
    SWITCH = "switch"

    @property
    def has_state(self) -> bool:
        return self is not ComponentKind.BUTTON

    @property
    def has_command(self) -> bool:
        return self in (ComponentKind.BUTTON, ComponentKind.SWITCH)


class BinarySensorClass(StrEnum):
    BATTERY = "battery"
    CONNECTIVITY = "connectivity"
    DOOR = "door"
    MOTION = "motion"
    OCCUPANCY = "occupancy"
    PROBLEM = "problem"
    SMOKE = "smoke"
    WINDOW = "window"


class ButtonClass(StrEnum):
    IDENTIFY = "identify"
    RESTART = "restart"
    UPDATE = "update"


class SensorClass(StrEnum):
    BATTERY = "battery"
    ENERGY = "energy"
    HUMIDITY = "humidity"
    ILLUMINANCE = "illuminance"
    POWER = "power"
    PRESSURE = "pressure"
    TEMPERATURE = "temperature"
    VOLTAGE = "voltage"


class SwitchClass(StrEnum):
    OUTLET = "outlet"
    SWITCH = "switch"


DeviceClass = BinarySensorClass | ButtonClass | SensorClass | SwitchClass

_CLASSES_BY_KIND: dict[ComponentKind, type[StrEnum]] = {
    ComponentKind.BINARY_SENSOR: BinarySensorClass,
    ComponentKind.BUTTON: ButtonClass,
    ComponentKind.SENSOR: SensorClass,
    ComponentKind.SWITCH: SwitchClass,
}


@dataclass(frozen=True, slots=True)
class Component:
    """A component kind, optionally narrowed by a device class.

    Use the named constructors so the device class always belongs to the kind:

        Component.binary_sensor(BinarySensorClass.MOTION)
        Component.switch()
    """

    kind: ComponentKind
    device_class: DeviceClass | None = None

    def __post_init__(self) -> None:
        if self.device_class is not None and not isinstance(self.device_class, _CLASSES_BY_KIND[self.kind]):
            msg = f"device class {self.device_class!r} is not valid for component {self.kind.value}"
            raise TypeError(msg)

    @classmethod
    def binary_sensor(cls, device_class: BinarySensorClass | None = None) -> Component:
        return cls(ComponentKind.BINARY_SENSOR, device_class)

    @classmethod
    def button(cls, device_class: ButtonClass | None = None) -> Component:
        return cls(ComponentKind.BUTTON, device_class)

    @classmethod
    def sensor(cls, device_class: SensorClass | None = None) -> Component:
        return cls(ComponentKind.SENSOR, device_class)

    @classmethod
    def switch(cls, device_class: SwitchClass | None = None) -> Component:
        return cls(ComponentKind.SWITCH, device_class)

    @property
    def has_state(self) -> bool:
        return self.kind.has_state

    @property
    def has_command(self) -> bool:
        return self.kind.has_command

    def __str__(self) -> str:
        return self.kind.value
