"""Storage back ends: settings file lookup, Prometheus metrics and Redis."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

import redis


class StorageError(Exception):
    """Raised when a storage back end fails."""


@dataclass
class PrometheusMetric:
    name: str
    value: float = 0.0
    labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def simple(cls, name: str, value: float) -> PrometheusMetric:
        """A metric without labels."""
        return cls(name, float(value))


def _format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value == int(value):
        return str(int(value))
    return format(Decimal(repr(value)), "f")


@dataclass
class ConfigFileStorage:
    """Finds a settings file in a directory or any of its parents.

    The search starts at ``start``, or at the working directory when unset.
    """

    start: Path | None = None

    def get_config_file(self, file_name: str) -> str | None:
        """Contents of the nearest ``file_name``, or None if there is none."""
        try:
            current = Path(self.start if self.start is not None else Path.cwd()).resolve()
        except OSError as exc:
            raise StorageError(f"Error getting current dir: {exc}") from exc
        for directory in (current, *current.parents):
            path = directory / file_name
            if path.exists():
                try:
                    return path.read_text(encoding="utf-8")
                except OSError as exc:
                    raise StorageError(f"Error reading file: {exc}") from exc
        return None


@dataclass
class PrometheusStorage:
    job_name: str
    url: str
    timeout: float = 10.0

    def get_metrics_text(self, prefix: str, metrics: Iterable[PrometheusMetric]) -> str:
        """Render metrics in the Prometheus text exposition format."""
        lines = []
        for metric in metrics:
            labels = ""
            if metric.labels:
                pairs = ",".join(
                    f'{name}="{metric.labels[name]}"' for name in sorted(metric.labels)
                )
                labels = "{" + pairs + "}"
            lines.append(f"{prefix}_{metric.name}{labels} {_format_value(metric.value)}\n")
        return "".join(lines)

    def flush_metrics(self) -> None:
        """Ask the Prometheus server to delete every series of this job."""
        query = urlencode({"match[]": f'{{job="{self.job_name}"}}'})
        request = Request(
            f"{self.url}/api/v1/admin/tsdb/delete_series?{query}", data=b"", method="POST"
        )
        try:
            with urlopen(request, timeout=self.timeout):
                pass
        except HTTPError:
            # The server answered; only a failed request counts as an error.
            return
        except (URLError, OSError) as exc:
            raise StorageError(f"Failed to flush metrics: {exc}") from exc


class RedisStorage:
    """Key-value and sorted-set storage on a Redis server."""

    def __init__(self, url: str) -> None:
        self.url = url
        try:
            self._client = redis.Redis.from_url(url, decode_responses=True)
        except ValueError as exc:
            raise StorageError(f"Invalid Redis URL: {exc}") from exc
        try:
            self._client.ping()
        except redis.RedisError as exc:
            raise StorageError(f"Failed to connect to Redis: {exc}") from exc

    def append_sorted_set(self, key: str, score: int, value: str) -> None:
        try:
            self._client.zadd(key, {value: score})
        except redis.RedisError as exc:
            raise StorageError(f"Failed to append to sorted set: {exc}") from exc

    def save_key(self, key: str, value: str) -> None:
        try:
            self._client.set(key, value)
        except redis.RedisError as exc:
            raise StorageError(f"Failed to save key: {exc}") from exc

    def load_key(self, key: str) -> str:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise StorageError(f"Failed to load key: {exc}") from exc
        if value is None:
            raise StorageError(f"Failed to load key: {key!r} does not exist")
        return value

    def flush_data(self) -> None:
        try:
            self._client.flushall()
        except redis.RedisError as exc:
            raise StorageError(f"Failed to flush data: {exc}") from exc