import math
import os

from hass_agent import __version__

__all__ = [
    "AGENT_VERSION",
    "AVAILABILITY_OFFLINE_MSG",
    "AVAILABILITY_ONLINE_MSG",
    "CLIENT_ID_LENGTH",
    "DEFAULT_KEEP_ALIVE",
    "DEFAULT_PORT",
    "DEFAULT_TLS_PORT",
    "DEFAULT_TOPIC_BASE",
    "HASS_AGENT_DEBUG",
    "HASS_AGENT_LOG_FORMAT",
    "HASS_AGENT_LOG_HUMAN_OUTPUT",
    "HASS_AGENT_LOG_JSON_FILE",
    "HASS_AGENT_RECONNECT_DELAY",
    "HASS_BIRTH_MSG",
    "HASS_STATUS_TOPIC",
    "INCOMING_QUEUE_SIZE",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")

AGENT_VERSION: str = __version__

DEFAULT_TOPIC_BASE: str = "homeassistant"
DEFAULT_PORT: int = 1883
DEFAULT_TLS_PORT: int = 8883
DEFAULT_KEEP_ALIVE: float = 5.0
CLIENT_ID_LENGTH: int = 23
INCOMING_QUEUE_SIZE: int = 128

# Home Assistant publishes the birth message on {base}/status when it (re)starts
HASS_STATUS_TOPIC: str = "status"
HASS_BIRTH_MSG: str = "online"

AVAILABILITY_ONLINE_MSG: bytes = b"online"
AVAILABILITY_OFFLINE_MSG: bytes = b"offline"

HASS_AGENT_DEBUG: bool = os.environ.get("HASS_AGENT_DEBUG", "0").casefold() in YES_ANSWER

_reconnect_delay = os.environ.get("HASS_AGENT_RECONNECT_DELAY", "5")
try:
    _reconnect_delay_value: float = float(_reconnect_delay) if _reconnect_delay else 5.0
except ValueError:
    _reconnect_delay_value = 5.0
if not math.isfinite(_reconnect_delay_value):
    _reconnect_delay_value = 5.0
HASS_AGENT_RECONNECT_DELAY: float = _reconnect_delay_value

HASS_AGENT_LOG_FORMAT: str = os.environ.get("HASS_AGENT_LOG_FORMAT", "human").casefold()
_json_file = os.environ.get("HASS_AGENT_LOG_JSON_FILE")
HASS_AGENT_LOG_JSON_FILE: str | None = _json_file if _json_file else None
HASS_AGENT_LOG_HUMAN_OUTPUT: str = os.environ.get("HASS_AGENT_LOG_HUMAN_OUTPUT", "stdout")
