"""Unit control harness with structured logging and metrics.

Connects to one unit, applies an optional partial state, prints the status
snapshot as JSON on stdout and optionally streams events for a while.
Logs go to stderr so stdout stays machine-readable.
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from pydantic import ValidationError

from sinclair_ac.client import SinclairClient
from sinclair_ac.config import ClientConfig, load_config
from sinclair_ac.const import SINCLAIR_DEBUG, SINCLAIR_METRICS_PORT, SINCLAIR_VERSION
from sinclair_ac.logging_abstraction import configure_logging, get_logger
from sinclair_ac.metrics import start_metrics_server
from sinclair_ac.protocol.exceptions import SinclairProtocolError
from sinclair_ac.protocol.properties import FanSpeed, Mode, SwingVertical
from sinclair_ac.structs import ClientEvent, DesiredState, EventKind
from sinclair_ac.transport.exceptions import BindError

logger = get_logger(__name__)

MODE_CHOICES = [mode.name.lower() for mode in Mode]
SWING_CHOICES = [swing.name.lower() for swing in SwingVertical]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sinclair-ac",
        description="Control a Sinclair air conditioner over the local network",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {SINCLAIR_VERSION}")
    parser.add_argument("--host", help="Unit IP address")
    parser.add_argument("--config", help="YAML config file (flags override it)")
    parser.add_argument("--power", choices=["on", "off"], help="Turn the unit on or off")
    parser.add_argument("--mode", choices=MODE_CHOICES, help="Operating mode")
    parser.add_argument("--temperature", type=int, help="Target temperature in °C (16-30)")
    parser.add_argument(
        "--fan",
        type=int,
        choices=[int(speed) for speed in FanSpeed],
        help="Fan speed (0 = auto, 1-5)",
    )
    parser.add_argument("--swing", choices=SWING_CHOICES, help="Vertical swing position")
    parser.add_argument(
        "--watch",
        type=float,
        default=0.0,
        metavar="SECONDS",
        help="Print events as JSON lines for this long before exiting",
    )
    parser.add_argument(
        "--log-level",
        default="DEBUG" if SINCLAIR_DEBUG else "INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: DEBUG when SINCLAIR_DEBUG is set, else INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "human", "both"],
        help="Log format (default: SINCLAIR_LOG_FORMAT or human)",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=SINCLAIR_METRICS_PORT,
        help="Serve Prometheus metrics on this port (default: disabled)",
    )
    return parser


def build_config(args: argparse.Namespace) -> ClientConfig:
    """
    Build the client config from --config and --host.

    Raises:
        ValueError: Neither a host nor a config file was given
        pydantic.ValidationError: A config value is invalid
    """
    if args.config:
        return load_config(args.config, host=args.host)
    if not args.host:
        msg = "either --host or --config is required"
        raise ValueError(msg)
    return ClientConfig(host=args.host)


def desired_from_args(args: argparse.Namespace) -> DesiredState | None:
    """Partial state requested on the command line, or None for a read-only run."""
    desired = DesiredState(
        power=None if args.power is None else args.power == "on",
        mode=None if args.mode is None else Mode[args.mode.upper()],
        temperature=args.temperature,
        fan=None if args.fan is None else FanSpeed(args.fan),
        swing=None if args.swing is None else SwingVertical[args.swing.upper()],
    )
    if all(value is None for value in (desired.power, desired.mode, desired.temperature, desired.fan, desired.swing)):
        return None
    return desired


def print_event(event: ClientEvent) -> None:
    line = {
        "event": str(event.kind),
        "state": event.state.to_dict(),
        "error": str(event.error) if event.error else None,
    }
    print(json.dumps(line), flush=True)


async def main_async(args: argparse.Namespace) -> int:
    """Async main entry point."""
    try:
        config = build_config(args)
        desired = desired_from_args(args)
        if desired is not None:
            desired.to_command()
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Invalid arguments: %s", e)
        return 1

    if args.metrics_port:
        start_metrics_server(args.metrics_port)
        logger.info("Metrics server started on port %d", args.metrics_port)

    client = SinclairClient(config)
    if args.watch > 0:
        for kind in EventKind:
            client.on(kind, print_event)

    try:
        state = await client.connect()
        logger.info("Connected to %s", config.host, extra={"host": config.host})
        if desired is not None:
            state = await client.set_state(desired)
            logger.info("State applied", extra={"host": config.host})
        else:
            state = await client.get_status(refresh=True)
        summary = state.to_dict()
        summary["room_temperature"] = state.room_temperature(config.temperature_sensor_offset)
        print(json.dumps(summary, indent=2), flush=True)

        if args.watch > 0:
            await asyncio.sleep(args.watch)
    except BindError as e:
        logger.error("Could not bind %s: %s", config.host, e, extra={"attempts": e.attempts})
        return 1
    except SinclairProtocolError as e:
        logger.error("Request to %s failed: %s", config.host, e)
        return 1
    finally:
        await client.close()

    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        log_format=args.log_format,
        human_output="stderr",
    )
    return asyncio.run(main_async(args))


if __name__ == "__main__":
    sys.exit(main())
