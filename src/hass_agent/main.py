from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import dotenv
import uvloop

from hass_agent.connector import (
    ConfigError,
    Connector,
    ConnectorOptions,
    HandlerError,
    HandlerFactory,
)
from hass_agent.const import AGENT_VERSION, HASS_AGENT_DEBUG
from hass_agent.correlation import correlation_context
from hass_agent.devices import CustomDevice, raw_handler
from hass_agent.logging_abstraction import get_logger, set_package_level

logger = get_logger(__name__)

# aiomqtt logs through the "mqtt" logger; only let errors through
mqtt_logger = logging.getLogger("mqtt")
mqtt_logger.setLevel(logging.ERROR)
mqtt_logger.propagate = False

EXAMPLES: dict[str, HandlerFactory] = {
    "custom": CustomDevice,
    "raw": raw_handler,
}


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Home Assistant MQTT discovery agent")
    _ = parser.add_argument("--env", help="Path to an environment file", default=None, type=Path)
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug logging")
    _ = parser.add_argument("--example", choices=sorted(EXAMPLES), default="custom", help="Device to run")
    _ = parser.add_argument("--host", help="MQTT broker host (HASS_AGENT_MQTT_HOST)")
    _ = parser.add_argument("--port", type=int, help="MQTT broker port, 8883 with TLS, 1883 without")
    _ = parser.add_argument("--username", help="MQTT username (HASS_AGENT_MQTT_USER)")
    _ = parser.add_argument("--password", help="MQTT password (HASS_AGENT_MQTT_PASS)")
    _ = parser.add_argument("--client-id", help="MQTT client id, random if unset")
    _ = parser.add_argument("--topic-base", help="Discovery prefix, defaults to 'homeassistant'")
    _ = parser.add_argument("--keep-alive", help="Keep alive interval, e.g. '5s'")
    _ = parser.add_argument(
        "--disable-tls",
        action="store_true",
        default=None,
        help="Connect without TLS",
    )
    _ = parser.add_argument("--availability-topic", help="Publish agent availability on this topic")
    _ = parser.add_argument(
        "--print-schema",
        action="store_true",
        help="Print the JSON schema of the connection options and exit",
    )
    return parser.parse_args(argv)


def load_env_file(env_path: Path) -> None:
    env_path = env_path.expanduser().resolve()
    if not env_path.exists():
        logger.error("Environment file not found", extra={"path": str(env_path)})
        return
    if dotenv.load_dotenv(env_path, override=True):
        logger.info("Environment variables loaded", extra={"source": str(env_path)})
    else:
        logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})


def options_schema() -> str:
    """JSON schema of ``ConnectorOptions``, for validating configuration files."""
    return json.dumps(ConnectorOptions.model_json_schema(), indent=2)


def build_connector(args: argparse.Namespace) -> Connector:
    options = ConnectorOptions.from_env(
        host=args.host,
        port=args.port,
        username=args.username,
        password=args.password,
        client_id=args.client_id,
        topic_base=args.topic_base,
        keep_alive=args.keep_alive,
        disable_tls=args.disable_tls,
    )
    return Connector(options, EXAMPLES[args.example], availability=args.availability_topic)


def main(argv: list[str] | None = None) -> int:
    """Entry point of the ``hass-agent`` script."""
    args = parse_cli(argv)
    if args.print_schema:
        print(options_schema())
        return 0

    with correlation_context():
        logger.info("Starting hass-agent", extra={"version": AGENT_VERSION})

        if args.debug or HASS_AGENT_DEBUG:
            set_package_level(logging.DEBUG)
            logger.info("Debug logging enabled")
        if args.env:
            load_env_file(args.env)

        try:
            connector = build_connector(args)
        except ConfigError as err:
            logger.error("Invalid configuration: %s", err)
            return 2

        try:
            uvloop.run(connector.run())
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        except HandlerError as err:
            logger.error("Fatal handler error: %s (%s)", err, err.__cause__)
            return 1
        logger.info("hass-agent stopped")
        return 0


if __name__ == "__main__":
    sys.exit(main())
