"""Command-line entry point."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from collections.abc import Sequence

from marketsim.server import run_server
from marketsim.settings import (
    SettingsError,
    SimulationSettings,
    SimulationSettingsBuilder,
    _ConfigSource,
)
from marketsim.storage import ConfigFileStorage

logger = logging.getLogger(__name__)

_UNSIGNED = re.compile(r"\+?[0-9]+")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="market-sim", description="Market Simulator")
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    start = commands.add_parser("start", help="Start the simulator")
    start.add_argument("-f", "--flush_storage", action="store_true")
    start.add_argument("-o", "--max_orders_per_tick")
    start.add_argument("--max-duration-seconds")
    start.add_argument("-a", "--address")
    start.add_argument("--port")
    start.add_argument("--redis-url")
    start.add_argument("--prometheus-url")
    start.add_argument("--time-to-wait-millis")

    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        parser.print_help(sys.stderr)
        parser.exit(2)
    return parser.parse_args(argv)


def _unsigned(value: str | None, name: str) -> int | None:
    if value is None:
        return None
    if not _UNSIGNED.fullmatch(value) or int(value) >= 2**64:
        raise SettingsError(f"Invalid value for {name}")
    return int(value)


def build_settings(args: argparse.Namespace, config_file: _ConfigSource) -> SimulationSettings:
    """Settings from the command line, overridden by the settings file if present."""
    builder = SimulationSettingsBuilder(
        address=args.address,
        flush_storage=args.flush_storage,
        max_duration_seconds=_unsigned(args.max_duration_seconds, "max-duration"),
        max_orders_per_tick=_unsigned(args.max_orders_per_tick, "max_orders_per_tick"),
        port=args.port,
        prometheus_url=args.prometheus_url,
        redis_url=args.redis_url,
        time_to_wait_millis=_unsigned(args.time_to_wait_millis, "time_to_wait_millis"),
    )
    try:
        return builder.load_from_storage(config_file)
    except SettingsError as exc:
        raise SettingsError(f"Failed to load simulation settings: {exc}") from exc


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = build_settings(args, ConfigFileStorage())
    except SettingsError as exc:
        print(exc, file=sys.stderr)
        return 1

    try:
        run_server(settings)
    except KeyboardInterrupt:
        return 0
    except Exception as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())