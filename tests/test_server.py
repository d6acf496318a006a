import json
import threading
import time as real_time
from urllib.error import HTTPError
from urllib.request import urlopen

import pytest

from marketsim.server import (
    SharedState,
    SimulationStopped,
    create_http_server,
    create_new_state,
    run_simulation_loop,
    simulation_step,
)
from marketsim.settings import SimulationSettings
from marketsim.simulation import Simulation
from marketsim.state import STATE_KEY, SimulationState


class FakeRedis:
    def __init__(self):
        self.values = {}

    def save_key(self, key, value):
        self.values[key] = value

    def load_key(self, key):
        return self.values[key]


class RecordingPriceStorage:
    def __init__(self):
        self.calls = 0

    def save_historic_price(self, prices, time):
        self.calls += 1


@pytest.fixture
def running_server():
    settings = SimulationSettings()
    se, time = create_new_state(settings)
    shared = SharedState(se=se, time=time, settings=settings)
    httpd = create_http_server(shared, "127.0.0.1", 0)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield shared, f"http://127.0.0.1:{httpd.server_address[1]}"
    httpd.shutdown()
    httpd.server_close()
    thread.join()


def test_create_new_state_sets_up_exchange():
    settings = SimulationSettings(time_to_wait_millis=250)
    se, time = create_new_state(settings)
    assert se.settings.name == "Market Simulator"
    assert se.settings.location == "Hong Kong"
    assert se.settings.trading_days == [0, 1, 2, 3, 4]
    assert se.settings.trading_hours == [9, 10, 11, 12, 13, 14, 15]
    assert time.wait_millis == 250
    assert time.time == 0


def test_create_new_state_starts_at_a_midnight_near_now():
    se, time = create_new_state(SimulationSettings())
    assert time.initial_time % (24 * 60 * 60) == 0
    assert abs(time.initial_time - real_time.time()) < 2 * 24 * 60 * 60


def test_health(running_server):
    _, base = running_server
    with urlopen(f"{base}/health") as response:
        assert response.status == 200
        assert response.read() == b"OK"


def test_unknown_path_is_not_found(running_server):
    shared, base = running_server
    with pytest.raises(HTTPError) as info:
        urlopen(f"{base}/nothing-here")
    assert info.value.code == 404
    assert shared.time.get_running_seconds() == 0
    with urlopen(f"{base}/health") as response:
        assert response.read() == b"OK"


def test_grafana_data(running_server):
    shared, base = running_server
    with urlopen(f"{base}/grafana/data") as response:
        data = json.loads(response.read())
    assert data["current_time"] == shared.time.get_virtual_time_formatted()
    assert data["currency"] == shared.se.settings.currency.value
    assert data["year_holidays"] == []
    assert (
        data["simulation_settings"]["max_orders_per_tick"]
        == shared.settings.max_orders_per_tick
    )


def test_prometheus_metrics(running_server):
    shared, base = running_server
    with urlopen(f"{base}/prometheus/metrics") as response:
        text = response.read().decode("utf-8")
    lines = text.splitlines()
    assert "market_sim_companies_count 0" in lines
    assert "market_sim_investors_count 0" in lines
    trading = "1" if shared.se.can_trade_now(shared.time) else "0"
    assert f"market_sim_trading_now {trading}" in lines


def test_step_stops_at_max_duration():
    settings = SimulationSettings(max_duration_seconds=0)
    se, time = create_new_state(settings)
    shared = SharedState(se=se, time=time, settings=settings)
    simulation = Simulation(b"seed", settings, RecordingPriceStorage())
    redis = FakeRedis()
    with pytest.raises(SimulationStopped):
        simulation_step(simulation, shared, redis, settings)
    assert redis.values == {}
    assert shared.time.time == 0


def test_loop_returns_when_stopped():
    settings = SimulationSettings(max_duration_seconds=0)
    se, time = create_new_state(settings)
    shared = SharedState(se=se, time=time, settings=settings)
    prices = RecordingPriceStorage()
    simulation = Simulation(b"seed", settings, prices)
    redis = FakeRedis()
    run_simulation_loop(simulation, shared, redis, settings)
    assert prices.calls == 0
    assert redis.values == {}


def test_step_runs_ticks_and_saves_state():
    settings = SimulationSettings(max_orders_per_tick=5, time_to_wait_millis=10)
    se, time = create_new_state(settings)
    shared = SharedState(se=se, time=time, settings=settings)
    prices = RecordingPriceStorage()
    simulation = Simulation(b"seed", settings, prices)
    simulation.init(shared.se, shared.time)
    redis = FakeRedis()

    wait = simulation_step(simulation, shared, redis, settings)

    assert wait == settings.time_to_wait_millis
    assert shared.time.time == 1
    assert prices.calls == 1
    saved = SimulationState.from_json(redis.values[STATE_KEY])
    assert saved.time.time == 1
    assert saved.time.initial_time == shared.time.initial_time
    assert set(saved.se.companies.mapping) == set(shared.se.companies.mapping)