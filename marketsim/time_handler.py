"""Virtual clock that drives the simulation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo

DEFAULT_SECS_FACTOR = 60 * 45
DEFAULT_WAIT_MILLIS = 1000
_SECONDS_PER_DAY = 24 * 60 * 60


class Timezone(Enum):
    """Time zones the exchange can run in."""

    UTC = "Utc"
    HK = "Hk"

    def __str__(self) -> str:
        return "UTC" if self is Timezone.UTC else "UTC+08"

    def get_tz(self) -> tzinfo:
        """Return the tzinfo object for this zone."""
        return ZoneInfo("UTC" if self is Timezone.UTC else "Asia/Hong_Kong")


DEFAULT_TIMEZONE = Timezone.HK


def _format_day(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"


@dataclass
class TimeHandler:
    """Maps simulation ticks to a virtual wall-clock time.

    ``secs_factor`` is how many simulated seconds pass per real second and
    ``wait_millis`` is the real time between two ticks.
    """

    initial_time: int
    secs_factor: int = DEFAULT_SECS_FACTOR
    wait_millis: int = DEFAULT_WAIT_MILLIS
    tz: Timezone = DEFAULT_TIMEZONE
    time: int = 0

    def get_n_days_from_now_unix_timestamp(self, n: int) -> int:
        return self.get_now_unix_timestamp() + n * _SECONDS_PER_DAY

    def get_now_unix_timestamp(self) -> int:
        factor = self.wait_millis / 1000.0
        return int(factor * float(self.time) * float(self.secs_factor) + float(self.initial_time))

    def get_running_seconds(self) -> int:
        """Real seconds the simulation has been running."""
        return (self.time * self.wait_millis) // 1000

    def _virtual_time(self) -> datetime:
        return datetime.fromtimestamp(self.get_now_unix_timestamp(), self.tz.get_tz())

    def get_weekday(self) -> int:
        """Day of the week, Monday being 0."""
        return self._virtual_time().weekday()

    def get_year_weekdays(self, year: str) -> list[str]:
        """All Monday-to-Friday dates of ``year`` as YYYY-MM-DD strings."""
        year_num = int(year)
        tz = self.tz.get_tz()
        start = datetime(year_num, 1, 1, tzinfo=tz).timestamp()
        weekdays = []
        for offset in range(367):
            date = datetime.fromtimestamp(start + offset * _SECONDS_PER_DAY, tz)
            if date.weekday() >= 5 or date.year != year_num:
                continue
            weekdays.append(_format_day(date))
        return weekdays

    def get_day24hour(self) -> int:
        return self._virtual_time().hour

    def get_virtual_day_formatted(self) -> str:
        return _format_day(self._virtual_time())

    def get_virtual_year_formatted(self) -> str:
        return f"{self._virtual_time().year:04d}"

    def get_virtual_time_formatted(self) -> str:
        moment = self._virtual_time()
        return (
            f"{_format_day(moment)} "
            f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d} {moment.tzname()}"
        )

    def get_time_running(self) -> str:
        """Running time in a compact form such as ``1h6m40s``."""
        seconds = self.get_running_seconds()
        parts = []
        if seconds >= 3600:
            parts.append(f"{seconds // 3600}h")
        if seconds >= 60:
            parts.append(f"{(seconds % 3600) // 60}m")
        if seconds >= 1:
            parts.append(f"{seconds % 60}s")
        return "".join(parts)

    def tick(self) -> None:
        self.time += 1

    def set_time(self, time: int) -> None:
        self.time = time