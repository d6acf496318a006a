"""Stock holdings and their owners."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

from marketsim.company import CompanySymbol
from marketsim.money import Money


class OwnerKind(IntEnum):
    """Who can own stock; investors order before market makers."""

    INVESTOR = 0
    MARKET_MAKER = 1


_PREFIXES = {OwnerKind.INVESTOR: "I", OwnerKind.MARKET_MAKER: "M"}


@dataclass(frozen=True, order=True)
class StockOwner:
    """An investor or a market maker, identified by kind and id."""

    kind: OwnerKind
    id: int

    @classmethod
    def investor(cls, owner_id: int) -> StockOwner:
        return cls(OwnerKind.INVESTOR, owner_id)

    @classmethod
    def market_maker(cls, owner_id: int) -> StockOwner:
        return cls(OwnerKind.MARKET_MAKER, owner_id)

    @classmethod
    def parse(cls, text: str) -> StockOwner:
        """Parse the ``I<id>`` / ``M<id>`` form produced by ``str()``."""
        for kind, prefix in _PREFIXES.items():
            if text.startswith(prefix):
                digits = text[len(prefix):]
                if not digits.isdigit():
                    raise ValueError(f"Invalid StockOwner id: {text!r}")
                return cls(kind, int(digits))
        raise ValueError(f"Invalid StockOwner: {text!r}")

    def __str__(self) -> str:
        return f"{_PREFIXES[self.kind]}{self.id}"


@dataclass
class Stock:
    owner: StockOwner
    price: Money
    quantity: int
    symbol: CompanySymbol


@dataclass
class OwnedStocks:
    mapping: dict[StockOwner, list[Stock]] = field(default_factory=dict)

    def has_stocks(self, owner: StockOwner) -> bool:
        return bool(self.mapping.get(owner))

    def get_prices(self, symbol: CompanySymbol) -> list[Money]:
        """Purchase prices of every holding of ``symbol``, ordered by owner."""
        return [
            stock.price
            for owner in sorted(self.mapping)
            for stock in self.mapping[owner]
            if stock.symbol == symbol
        ]

    def stocks_of(self, owner: StockOwner) -> list[Stock]:
        """The owner's holdings list, created empty if missing."""
        return self.mapping.setdefault(owner, [])