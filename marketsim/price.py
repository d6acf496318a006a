"""Bid and ask prices per company."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from marketsim.company import CompanySymbol
from marketsim.money import Money


@dataclass(frozen=True)
class Price:
    ask: Money
    bid: Money

    def get_average(self) -> Money:
        """Mid price between ask and bid."""
        return Money((self.ask.value + self.bid.value) / Decimal(2), self.ask.currency)

    def get_with_spread(self, value: Decimal, spread: Decimal) -> Price:
        """A price centred on ``value``; the bid never goes negative."""
        return Price(
            ask=Money(value + spread, self.ask.currency),
            bid=Money(abs(value - spread), self.bid.currency),
        )


@dataclass
class Prices:
    mapping: dict[CompanySymbol, Price] = field(default_factory=dict)

    def get_lowest_bid_price(self) -> Money | None:
        bids = [self.mapping[symbol].bid for symbol in sorted(self.mapping)]
        return min(bids, key=lambda bid: bid.value, default=None)

    def get_average_price(self, symbol: CompanySymbol) -> Money | None:
        price = self.mapping.get(symbol)
        return price.get_average() if price is not None else None

    def get_ask_price(self, symbol: CompanySymbol) -> Money | None:
        price = self.mapping.get(symbol)
        return price.ask if price is not None else None