"""Simulation settings, built from command-line values and a settings file."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any, Protocol

from marketsim.storage import StorageError

SETTINGS_FILE_NAME = "market-sim-settings.json"

DEFAULT_ADDRESS = "0.0.0.0"
DEFAULT_MAX_INVESTOR_AGE = 100
DEFAULT_ORDERS_PER_TICK = 4000
DEFAULT_PROMETHEUS_JOB_NAME = "market-sim"
DEFAULT_PROMETHEUS_URL = "http://localhost:9090"
DEFAULT_REDIS_URL = "redis://127.0.0.1"
DEFAULT_TIME_TO_WAIT = 1000
DEFAULT_PORT = "9000"


class SettingsError(Exception):
    """Raised when settings cannot be loaded."""


class _ConfigSource(Protocol):
    def get_config_file(self, file_name: str) -> str | None: ...


@dataclass
class SimulationSettings:
    address: str = DEFAULT_ADDRESS
    flush_storage: bool = False
    max_duration_seconds: int | None = None
    max_investor_age: int = DEFAULT_MAX_INVESTOR_AGE
    max_orders_per_tick: int = DEFAULT_ORDERS_PER_TICK
    port: str = DEFAULT_PORT
    prometheus_job_name: str = DEFAULT_PROMETHEUS_JOB_NAME
    prometheus_url: str = DEFAULT_PROMETHEUS_URL
    redis_url: str = DEFAULT_REDIS_URL
    time_to_wait_millis: int = DEFAULT_TIME_TO_WAIT

    def __str__(self) -> str:
        title = "Simulation settings"
        rows = [
            ("Max orders per tick", str(self.max_orders_per_tick), True),
            ("Flush storage", "true" if self.flush_storage else "false", True),
            ("URL", f"http://{self.address}:{self.port}", False),
        ]
        label_width = max(len(label) for label, _, _ in rows)
        value_width = max(len(value) for _, value, _ in rows)
        inner = label_width + value_width + 3
        if len(title) > inner:
            value_width += len(title) - inner
            inner = len(title)

        separator = f"+{'-' * (label_width + 2)}+{'-' * (value_width + 2)}+"
        lines = [f"+{'-' * (inner + 2)}+", f"| {title.center(inner)} |", separator]
        for label, value, right in rows:
            cell = value.rjust(value_width) if right else value.ljust(value_width)
            lines.append(f"| {label.ljust(label_width)} | {cell} |")
            lines.append(separator)
        return "\n".join(lines)


_FIELD_KINDS = {
    "address": str,
    "flush_storage": bool,
    "max_duration_seconds": int,
    "max_investor_age": int,
    "max_orders_per_tick": int,
    "port": str,
    "prometheus_job_name": str,
    "prometheus_url": str,
    "redis_url": str,
    "time_to_wait_millis": int,
}


def _check_value(name: str, value: Any) -> None:
    kind = _FIELD_KINDS[name]
    if kind is int:
        valid = isinstance(value, int) and not isinstance(value, bool) and value >= 0
    else:
        valid = isinstance(value, kind)
    if not valid:
        raise SettingsError(f"Error parsing settings: invalid value for {name}: {value!r}")


def _or(value: Any, default: Any) -> Any:
    return default if value is None else value


@dataclass
class SimulationSettingsBuilder:
    """Partial settings; unset values fall back to defaults when built."""

    address: str | None = None
    flush_storage: bool | None = None
    max_duration_seconds: int | None = None
    max_investor_age: int | None = None
    max_orders_per_tick: int | None = None
    port: str | None = None
    prometheus_job_name: str | None = None
    prometheus_url: str | None = None
    redis_url: str | None = None
    time_to_wait_millis: int | None = None

    @classmethod
    def from_json(cls, text: str) -> SimulationSettingsBuilder:
        """Parse a settings document; unknown keys are ignored."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SettingsError(f"Error parsing settings: {exc}") from exc
        if not isinstance(data, dict):
            raise SettingsError("Error parsing settings: expected a JSON object")
        values = {}
        for item in fields(cls):
            value = data.get(item.name)
            if value is not None:
                _check_value(item.name, value)
            values[item.name] = value
        return cls(**values)

    def merge(self, other: SimulationSettingsBuilder) -> SimulationSettingsBuilder:
        """Values set in ``other`` win over those set here."""
        return SimulationSettingsBuilder(
            **{
                item.name: _or(getattr(other, item.name), getattr(self, item.name))
                for item in fields(self)
            }
        )

    def build(self) -> SimulationSettings:
        return SimulationSettings(
            address=_or(self.address, DEFAULT_ADDRESS),
            flush_storage=_or(self.flush_storage, False),
            max_duration_seconds=self.max_duration_seconds,
            max_investor_age=_or(self.max_investor_age, DEFAULT_MAX_INVESTOR_AGE),
            max_orders_per_tick=_or(self.max_orders_per_tick, DEFAULT_ORDERS_PER_TICK),
            port=_or(self.port, DEFAULT_PORT),
            prometheus_job_name=_or(self.prometheus_job_name, DEFAULT_PROMETHEUS_JOB_NAME),
            prometheus_url=_or(self.prometheus_url, DEFAULT_PROMETHEUS_URL),
            redis_url=_or(self.redis_url, DEFAULT_REDIS_URL),
            time_to_wait_millis=_or(self.time_to_wait_millis, DEFAULT_TIME_TO_WAIT),
        )

    def load_from_storage(self, config_file: _ConfigSource) -> SimulationSettings:
        """Merge in the settings file, if one is found, and build."""
        try:
            text = config_file.get_config_file(SETTINGS_FILE_NAME)
        except StorageError as exc:
            raise SettingsError(str(exc)) from exc
        builder = self if text is None else self.merge(self.from_json(text))
        return builder.build()