"""Brokers that route orders for investors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from marketsim.money import Money


class BrokerType(Enum):
    HUMAN = "Human"
    WEB = "Web"


@dataclass
class Broker:
    broker_type: BrokerType
    handling_fee: Money
    id: int
    name: str


@dataclass
class Brokers:
    last_id: int = 0
    mapping: dict[int, Broker] = field(default_factory=dict)

    def next_id(self) -> int:
        """Allocate and return the next broker id."""
        self.last_id += 1
        return self.last_id