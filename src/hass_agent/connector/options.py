"""Connection settings of the connector."""

from __future__ import annotations

import math
import os
import re
import secrets
import string
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from hass_agent.const import (
    CLIENT_ID_LENGTH,
    DEFAULT_KEEP_ALIVE,
    DEFAULT_PORT,
    DEFAULT_TLS_PORT,
    DEFAULT_TOPIC_BASE,
    HASS_STATUS_TOPIC,
    YES_ANSWER,
)
from hass_agent.connector.errors import ConfigError

__all__ = [
    "ENV_PREFIX",
    "AvailabilityOptions",
    "ConnectorOptions",
    "parse_duration",
    "random_client_id",
]

ENV_PREFIX = "HASS_AGENT_"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, "d": 86400.0}

# option name -> environment variable (without prefix)
_ENV_KEYS = {
    "host": "MQTT_HOST",
    "port": "MQTT_PORT",
    "username": "MQTT_USER",
    "password": "MQTT_PASS",
    "client_id": "MQTT_CLIENT_ID",
    "topic_base": "TOPIC_BASE",
    "keep_alive": "KEEP_ALIVE",
    "disable_tls": "DISABLE_TLS",
}


def random_client_id() -> str:
    """23 random alphanumerics, the longest id every MQTT 3.1 broker must accept."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(CLIENT_ID_LENGTH))


def parse_duration(value: str) -> float:
    """Parse a humantime style duration ("5s", "1m30s", "250ms") into seconds.

    A bare number is taken as seconds.
    """
    text = value.strip()
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if math.isfinite(seconds):
            return seconds
        msg = f"not a duration: {value!r}"
        raise ValueError(msg)

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if text[pos : match.start()].strip():
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    else:
        if pos and not text[pos:].strip():
            return total
    msg = f"not a duration: {value!r}"
    raise ValueError(msg)


class AvailabilityOptions(BaseModel):
    """Availability topic of the agent itself.

    The connector publishes ``online`` (retained) after connecting and
    registers ``offline`` (retained) as the session's last will.
    """

    model_config = ConfigDict(frozen=True)

    topic: str


class ConnectorOptions(BaseModel):
    """Immutable broker connection settings.

    ``port`` defaults to 8883 with TLS and 1883 without; ``client_id``
    defaults to a random id generated once, here.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(description="Hostname of the MQTT broker")
    port: int = Field(
        default=DEFAULT_TLS_PORT,
        description="Port of the MQTT broker, defaults to 8883 with TLS and 1883 without",
    )
    username: str | None = Field(default=None, description="MQTT username")
    password: str | None = Field(default=None, description="MQTT password")
    client_id: str = Field(default="", description="MQTT client id, a random id when empty")
    topic_base: str = Field(default=DEFAULT_TOPIC_BASE, description="Discovery prefix Home Assistant listens on")
    keep_alive: float = Field(
        default=DEFAULT_KEEP_ALIVE,
        description="Keep alive interval as a humantime duration, or a number of seconds",
        examples=["30s", "1m"],
        json_schema_extra={"type": ["string", "number"]},
    )
    disable_tls: bool = Field(default=False, description="TLS is used by default; set to connect without it")

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        values = {k: v for k, v in data.items() if v is not None}
        if "port" not in values:
            disable_tls = values.get("disable_tls", False)
            if isinstance(disable_tls, str):
                disable_tls = disable_tls.casefold() in YES_ANSWER
            values["port"] = DEFAULT_PORT if disable_tls else DEFAULT_TLS_PORT
        if not values.get("client_id"):
            values["client_id"] = random_client_id()
        return values

    @field_validator("host", "topic_base")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("topic_base")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        value = value.strip("/")
        if not value or "+" in value or "#" in value:
            msg = "must be a plain topic without wildcards"
            raise ValueError(msg)
        return value

    @field_validator("port")
    @classmethod
    def _valid_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            msg = "port out of range"
            raise ValueError(msg)
        return value

    @field_validator("keep_alive", mode="before")
    @classmethod
    def _parse_keep_alive(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_duration(value)
        return value

    @field_validator("keep_alive")
    @classmethod
    def _positive_keep_alive(cls, value: float) -> float:
        if not math.isfinite(value) or value <= 0:
            msg = "keep alive must be a positive, finite duration"
            raise ValueError(msg)
        return value

    @field_validator("disable_tls", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().casefold() in YES_ANSWER
        return value

    @property
    def tls(self) -> bool:
        return not self.disable_tls

    @property
    def status_topic(self) -> str:
        return f"{self.topic_base}/{HASS_STATUS_TOPIC}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> ConnectorOptions:
        """Build options from ``HASS_AGENT_*`` environment variables.

        Keyword overrides that are not ``None`` take precedence over the
        environment (used for command line arguments).

        Raises:
            ConfigError: a value is missing or cannot be parsed

        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for option, key in _ENV_KEYS.items():
            raw = environ.get(f"{ENV_PREFIX}{key}")
            if raw:
                values[option] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls.model_validate(values)
        except ValidationError as err:
            first = err.errors()[0]
            option = ".".join(str(part) for part in first["loc"]) or "options"
            raise ConfigError(option, values.get(option), first["msg"]) from err
