"""HTTP server exposing metrics while the simulation runs in the background."""

from __future__ import annotations

import calendar
import json
import logging
import threading
import time as _time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Protocol
from urllib.parse import urlsplit

from marketsim.logger import setup_logging
from marketsim.metrics import build_json_metrics, build_prometheus_metrics
from marketsim.settings import SimulationSettings
from marketsim.simulation import Simulation, flush_data
from marketsim.state import (
    EmptyStateError,
    RedisPriceStorage,
    SimulationState,
    load_simulation_state,
    prometheus_storage_from_settings,
    redis_storage_from_settings,
    save_simulation_state,
)
from marketsim.stock_exchange import StockExchange, StockExchangeSettings
from marketsim.time_handler import TimeHandler

logger = logging.getLogger(__name__)

DEFAULT_SEED = bytes(
    [
        0x1B, 0x2E, 0x3D, 0x4C, 0x5A, 0x69, 0x78, 0x87, 0x96, 0xA5, 0xB4, 0xC3, 0xD2, 0xE1, 0xF0, 0x0F,
        0x1E, 0x2D, 0x3C, 0x4B, 0x5A, 0x69, 0x78, 0x87, 0x96, 0xA5, 0xB4, 0xC3, 0xD2, 0xE1, 0xF0, 0x0F,
    ]
)

# One real second is 45 virtual minutes.
DEFAULT_SECS_FACTOR = 60 * 45

EXCHANGE_NAME = "Market Simulator"
EXCHANGE_LOCATION = "Hong Kong"
EXCHANGE_TIMEZONE = "UTC+08"
TRADING_DAYS = [0, 1, 2, 3, 4]
TRADING_HOURS = [9, 10, 11, 12, 13, 14, 15]


class SimulationStopped(Exception):
    """Raised when the simulation has run for its maximum duration."""


class _KeyValueStore(Protocol):
    def save_key(self, key: str, value: str) -> None: ...


@dataclass
class SharedState:
    """The exchange, clock and settings shared by the simulation and the server."""

    se: StockExchange
    time: TimeHandler
    settings: SimulationSettings
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)


def create_new_state(settings: SimulationSettings) -> tuple[StockExchange, TimeHandler]:
    """A fresh exchange and a clock starting at the beginning of today."""
    se = StockExchange(
        settings=StockExchangeSettings(
            name=EXCHANGE_NAME,
            location=EXCHANGE_LOCATION,
            timezone=EXCHANGE_TIMEZONE,
            trading_days=list(TRADING_DAYS),
            trading_hours=list(TRADING_HOURS),
        )
    )
    time = TimeHandler(
        initial_time=0,
        secs_factor=DEFAULT_SECS_FACTOR,
        wait_millis=settings.time_to_wait_millis,
    )
    today = datetime.now(time.tz.get_tz()).date()
    # The local date at midnight, read as UTC.
    time.initial_time = calendar.timegm(today.timetuple())
    return se, time


def _health(shared: SharedState) -> tuple[bytes, str]:
    return b"OK", "text/plain; charset=utf-8"


def _prometheus(shared: SharedState) -> tuple[bytes, str]:
    with shared.lock:
        text = build_prometheus_metrics(shared.time, shared.se, shared.settings)
    return text.encode("utf-8"), "text/plain; charset=utf-8"


def _grafana(shared: SharedState) -> tuple[bytes, str]:
    with shared.lock:
        data = build_json_metrics(shared.time, shared.settings, shared.se)
    return json.dumps(data).encode("utf-8"), "application/json"


_ROUTES: dict[str, Callable[[SharedState], tuple[bytes, str]]] = {
    "/health": _health,
    "/prometheus/metrics": _prometheus,
    "/grafana/data": _grafana,
}


class _SimulationHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], shared: SharedState) -> None:
        super().__init__(address, _Handler)
        self.shared = shared


class _Handler(BaseHTTPRequestHandler):
    server: _SimulationHTTPServer

    def do_GET(self) -> None:  # noqa: N802
        route = _ROUTES.get(urlsplit(self.path).path)
        if route is None:
            self._send(404, b"Not Found", "text/plain; charset=utf-8")
            return
        try:
            body, content_type = route(self.server.shared)
        except Exception as exc:
            logger.error("Failed to build metrics: %s", exc)
            self._send(500, b"", "text/plain; charset=utf-8")
            return
        self._send(200, body, content_type)

    def _send(self, status: int, body: bytes, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)


def create_http_server(shared: SharedState, address: str, port: int) -> ThreadingHTTPServer:
    """Bind the metrics server; call ``serve_forever`` to start it."""
    return _SimulationHTTPServer((address, int(port)), shared)


def simulation_step(
    simulation: Simulation,
    shared: SharedState,
    redis_storage: _KeyValueStore,
    settings: SimulationSettings,
) -> int:
    """Run one tick, advance the clock and save the state.

    Returns the milliseconds to wait before the next tick.
    """
    limit = settings.max_duration_seconds
    with shared.lock:
        if limit is not None and shared.time.get_running_seconds() >= limit:
            raise SimulationStopped("Simulation reached max duration")
        simulation.run(shared.se, shared.time)
        shared.time.tick()
        save_simulation_state(redis_storage, SimulationState(time=shared.time, se=shared.se))
        return shared.time.wait_millis


def run_simulation_loop(
    simulation: Simulation,
    shared: SharedState,
    redis_storage: _KeyValueStore,
    settings: SimulationSettings,
) -> None:
    """Tick until the maximum duration is reached."""
    while True:
        try:
            wait_millis = simulation_step(simulation, shared, redis_storage, settings)
        except SimulationStopped:
            logger.info("Simulation reached max duration, stopping...")
            return
        _time.sleep(wait_millis / 1000)


def _initial_state(settings: SimulationSettings) -> tuple[StockExchange, TimeHandler]:
    redis_storage = redis_storage_from_settings(settings)
    if settings.flush_storage:
        flush_data(redis_storage, prometheus_storage_from_settings(settings))
        return create_new_state(settings)
    try:
        state = load_simulation_state(redis_storage)
    except EmptyStateError:
        logger.debug("No simulation state found, creating a new one")
        return create_new_state(settings)
    return state.se, state.time


def run_server(settings: SimulationSettings) -> None:
    """Serve metrics over HTTP while the simulation runs until it stops."""
    se, time = _initial_state(settings)
    shared = SharedState(se=se, time=time, settings=settings)

    httpd = create_http_server(shared, settings.address, int(settings.port))
    server_thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    server_thread.start()
    try:
        simulation = Simulation(
            DEFAULT_SEED,
            settings,
            RedisPriceStorage(redis_storage_from_settings(settings)),
        )
        setup_logging(logging.DEBUG)
        print(settings)

        with shared.lock:
            try:
                simulation.init(shared.se, shared.time)
            except Exception as exc:
                logger.error("Failed to initialize the simulator: %s", exc)
                raise

        run_simulation_loop(simulation, shared, redis_storage_from_settings(settings), settings)
    finally:
        httpd.shutdown()
        httpd.server_close()
        server_thread.join()