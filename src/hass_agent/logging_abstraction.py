"""Logging abstraction layer for the agent.

Provides dual-format logging (JSON + human-readable) with correlation tracking
and structured context passed through ``extra=``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import cast, override

from hass_agent.correlation import get_correlation_id

__all__ = [
    "AgentLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "get_logger",
    "set_package_level",
]

_VALID_FORMATS = ("json", "human", "both")


def _context_of(record: logging.LogRecord) -> Mapping[str, object] | None:
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping) and extra_data:
        return cast("Mapping[str, object]", extra_data)
    return None


class JSONFormatter(logging.Formatter):
    """One JSON object per line, suitable for log shippers."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        context = _context_of(record)
        if context is not None:
            log_data["context"] = dict(context)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single line text logs with a short correlation ID and trailing context."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s <%(name)s:%(lineno)d> %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        record.correlation_id = f"[{correlation_id[:8]}]" if correlation_id else "[--------]"

        formatted = super().format(record)
        context = _context_of(record)
        if context is not None:
            formatted += " | " + " | ".join(f"{k}={v}" for k, v in context.items())
        return formatted


def _open_stream_handler(target: str) -> logging.Handler:
    if target == "stdout":
        return logging.StreamHandler(sys.stdout)
    if target == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(target)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(path, mode="a")
    except OSError as e:
        print(f"Warning: Failed to open log file {target}: {e}", file=sys.stderr)
        return logging.StreamHandler(sys.stdout)


class AgentLogger:
    """Thin wrapper around :class:`logging.Logger` adding structured context.

    Handlers are attached once per logger name; creating a second
    ``AgentLogger`` for the same name reuses the configured logger.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
        debug: bool = False,
    ) -> None:
        if log_format not in _VALID_FORMATS:
            log_format = "human"
        self.name: str = name
        self.log_format: str = log_format
        self.logger: logging.Logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)
        # let the root logger (and pytest's caplog) see our records too
        self.logger.propagate = True

        if not self.logger.handlers:
            self._configure_handlers(json_file, human_output or "stdout")

    def _configure_handlers(self, json_file: str | Path | None, human_output: str) -> None:
        level = self.logger.level

        if self.log_format in ("json", "both") and json_file:
            try:
                json_path = Path(json_file)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                json_handler = logging.FileHandler(json_path, mode="a")
            except OSError as e:
                print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)
            else:
                json_handler.setFormatter(JSONFormatter())
                json_handler.setLevel(level)
                self.logger.addHandler(json_handler)

        if self.log_format in ("human", "both"):
            human_handler = _open_stream_handler(human_output)
            human_handler.setFormatter(HumanReadableFormatter())
            human_handler.setLevel(level)
            self.logger.addHandler(human_handler)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self.logger.log(level, msg, *args, extra={"extra_data": dict(extra)} if extra else None)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR level including the active exception's traceback."""
        self.logger.exception(msg, *args, extra={"extra_data": dict(extra)} if extra else None)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> AgentLogger:
    """Get or create an AgentLogger using the environment defaults from ``const``."""
    from hass_agent.const import (
        HASS_AGENT_DEBUG,
        HASS_AGENT_LOG_FORMAT,
        HASS_AGENT_LOG_HUMAN_OUTPUT,
        HASS_AGENT_LOG_JSON_FILE,
    )

    return AgentLogger(
        name=name,
        log_format=log_format or HASS_AGENT_LOG_FORMAT,
        json_file=json_file or HASS_AGENT_LOG_JSON_FILE,
        human_output=human_output or HASS_AGENT_LOG_HUMAN_OUTPUT,
        debug=HASS_AGENT_DEBUG,
    )


def set_package_level(level: int, package: str = "hass_agent") -> None:
    """Set ``level`` on every configured logger of ``package`` and its handlers."""
    for name, candidate in logging.root.manager.loggerDict.items():
        if not isinstance(candidate, logging.Logger):
            continue
        if name == package or name.startswith(f"{package}."):
            candidate.setLevel(level)
            for handler in candidate.handlers:
                handler.setLevel(level)
