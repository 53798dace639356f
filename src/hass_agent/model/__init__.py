"""Value types of the Home Assistant MQTT discovery protocol."""

from .component import BinarySensorClass, ButtonClass, Component, ComponentKind, SensorClass, SwitchClass
from .device_id import DeviceId
from .discovery import Availability, AvailabilityMode, Device, Discovery, StateClass

__all__ = [
    "Availability",
    "AvailabilityMode",
    "BinarySensorClass",
    "ButtonClass",
    "Component",
    "ComponentKind",
    "Device",
    "DeviceId",
    "Discovery",
    "SensorClass",
    "StateClass",
    "SwitchClass",
]
