import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

import pytest
import redis

from marketsim.storage import (
    ConfigFileStorage,
    PrometheusMetric,
    PrometheusStorage,
    RedisStorage,
    StorageError,
)


class FakeRedis:
    def __init__(self, fail=False, unreachable=False):
        self.data = {}
        self.sorted_sets = {}
        self.fail = fail
        self.unreachable = unreachable

    def _check(self):
        if self.fail:
            raise redis.RedisError("boom")

    def ping(self):
        if self.unreachable:
            raise redis.ConnectionError("refused")
        return True

    def zadd(self, key, mapping):
        self._check()
        self.sorted_sets.setdefault(key, {}).update(mapping)

    def set(self, key, value):
        self._check()
        self.data[key] = value

    def get(self, key):
        self._check()
        return self.data.get(key)

    def flushall(self):
        self._check()
        self.data.clear()
        self.sorted_sets.clear()


def make_redis(fake):
    with patch("redis.Redis.from_url", return_value=fake):
        return RedisStorage("redis://localhost")


def test_simple_metric_has_no_labels():
    metric = PrometheusMetric.simple("trading_now", 1)
    assert metric.name == "trading_now"
    assert metric.value == 1.0
    assert metric.labels == {}


def test_metrics_text_formats_integral_values_without_fraction():
    storage = PrometheusStorage(job_name="market-sim", url="http://localhost:9090")
    text = storage.get_metrics_text("market_sim", [PrometheusMetric.simple("trading_now", 1.0)])
    assert text == "market_sim_trading_now 1\n"


def test_metrics_text_renders_sorted_labels():
    storage = PrometheusStorage(job_name="market-sim", url="http://localhost:9090")
    metric = PrometheusMetric("price_ask", 12.5, {"symbol": "ACME", "name": "Acme"})
    text = storage.get_metrics_text("market_sim", [metric])
    assert text == 'market_sim_price_ask{name="Acme",symbol="ACME"} 12.5\n'


def test_metrics_text_one_line_per_metric_and_nan():
    storage = PrometheusStorage(job_name="market-sim", url="http://localhost:9090")
    metrics = [PrometheusMetric.simple("a", 0.25), PrometheusMetric.simple("b", float("nan"))]
    lines = storage.get_metrics_text("p", metrics).splitlines()
    assert lines == ["p_a 0.25", "p_b NaN"]


def test_metrics_text_empty():
    storage = PrometheusStorage(job_name="j", url="http://localhost:9090")
    assert storage.get_metrics_text("p", []) == ""


def test_config_file_found_in_parent(tmp_path):
    (tmp_path / "settings-test.json").write_text('{"port": "1"}', encoding="utf-8")
    child = tmp_path / "a" / "b"
    child.mkdir(parents=True)
    storage = ConfigFileStorage(start=child)
    assert storage.get_config_file("settings-test.json") == '{"port": "1"}'


def test_config_file_missing_returns_none(tmp_path):
    storage = ConfigFileStorage(start=tmp_path)
    assert storage.get_config_file("no-such-file-7f3a9c.json") is None


def test_config_file_defaults_to_working_directory(tmp_path, monkeypatch):
    (tmp_path / "cwd-test.json").write_text("content", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    assert ConfigFileStorage().get_config_file("cwd-test.json") == "content"


@pytest.fixture
def prometheus_server():
    class Handler(BaseHTTPRequestHandler):
        paths = []
        status = 200

        def do_POST(self):
            type(self).paths.append(self.path)
            self.send_response(type(self).status)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def log_message(self, *args):
            pass

    server = HTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server, Handler
    finally:
        server.shutdown()
        server.server_close()


def test_flush_metrics_posts_delete_series(prometheus_server):
    server, handler = prometheus_server
    url = f"http://127.0.0.1:{server.server_address[1]}"
    storage = PrometheusStorage(job_name="market-sim", url=url)
    result = storage.flush_metrics()
    assert result is None
    assert storage.job_name == "market-sim"
    assert len(handler.paths) == 1
    parts = urlsplit(handler.paths[0])
    assert parts.path == "/api/v1/admin/tsdb/delete_series"
    assert parse_qs(parts.query) == {"match[]": ['{job="market-sim"}']}


def test_flush_metrics_ignores_error_status(prometheus_server):
    server, handler = prometheus_server
    handler.status = 500
    url = f"http://127.0.0.1:{server.server_address[1]}"
    result = PrometheusStorage(job_name="j", url=url).flush_metrics()
    assert result is None
    assert len(handler.paths) == 1
    assert parse_qs(urlsplit(handler.paths[0]).query) == {"match[]": ['{job="j"}']}


def test_flush_metrics_unreachable_raises():
    storage = PrometheusStorage(job_name="j", url="http://127.0.0.1:1", timeout=2.0)
    with pytest.raises(StorageError, match="Failed to flush metrics"):
        storage.flush_metrics()


def test_redis_invalid_url_raises():
    with pytest.raises(StorageError, match="Invalid Redis URL"):
        RedisStorage("not-a-url")


def test_redis_unreachable_raises():
    with pytest.raises(StorageError, match="Failed to connect"):
        make_redis(FakeRedis(unreachable=True))


def test_redis_save_and_load_round_trip():
    storage = make_redis(FakeRedis())
    storage.save_key("simulation_state", '{"a": 1}')
    assert storage.load_key("simulation_state") == '{"a": 1}'


def test_redis_load_missing_key_raises():
    storage = make_redis(FakeRedis())
    with pytest.raises(StorageError, match="Failed to load key"):
        storage.load_key("missing")


def test_redis_append_sorted_set_and_flush():
    fake = FakeRedis()
    storage = make_redis(fake)
    storage.append_sorted_set("price:ACME", 100, "100,1.5")
    assert fake.sorted_sets == {"price:ACME": {"100,1.5": 100}}
    storage.save_key("k", "v")
    storage.flush_data()
    assert fake.sorted_sets == {}
    with pytest.raises(StorageError):
        storage.load_key("k")


def test_redis_errors_are_wrapped():
    fake = FakeRedis()
    storage = make_redis(fake)
    fake.fail = True
    with pytest.raises(StorageError, match="Failed to save key"):
        storage.save_key("k", "v")
    with pytest.raises(StorageError, match="Failed to append to sorted set"):
        storage.append_sorted_set("k", 1, "v")
    with pytest.raises(StorageError, match="Failed to flush data"):
        storage.flush_data()