"""Market makers, treated as having unlimited liquidity."""

from __future__ import annotations

from dataclasses import dataclass, field

from marketsim.time_handler import TimeHandler


class MarketMakerVerifyError(ValueError):
    """Raised when a market maker's permit window is invalid."""


@dataclass
class MarketMaker:
    id: int
    permit_start_time: int
    permit_end_time: int

    def verify(self, time: TimeHandler) -> None:
        if self.permit_start_time >= self.permit_end_time:
            raise MarketMakerVerifyError("permit must start before it ends")
        if self.permit_start_time < time.get_now_unix_timestamp():
            raise MarketMakerVerifyError("permit starts in the past")


@dataclass
class MarketMakers:
    last_id: int = 0
    mapping: dict[int, MarketMaker] = field(default_factory=dict)

    def next_id(self) -> int:
        """Allocate and return the next market maker id."""
        self.last_id += 1
        return self.last_id