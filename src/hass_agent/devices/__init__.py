"""Example device implementations built on the connector."""

from .custom import CustomDevice
from .raw import raw_handler

__all__ = ["CustomDevice", "raw_handler"]
