"""Orders and the central order book."""

from __future__ import annotations

from collections.abc import Set
from dataclasses import dataclass, field
from enum import Enum

from marketsim.company import CompanySymbol
from marketsim.stock import StockOwner


@dataclass(frozen=True)
class OrderType:
    """A market order, or a limit order carrying its limit price as text."""

    limit_price: str | None = None

    @classmethod
    def market(cls) -> OrderType:
        return cls()

    @classmethod
    def limit(cls, price: str) -> OrderType:
        return cls(str(price))

    @property
    def is_market(self) -> bool:
        return self.limit_price is None


class OrderSide(Enum):
    BUY = "Buy"
    SELL = "Sell"


class OrderStatus(Enum):
    FILLED = "Filled"
    INIT = "Init"
    PENDING = "Pending"


class OrderVerifyError(ValueError):
    """Raised for an order without shares."""


@dataclass(frozen=True)
class Order:
    owner_id: StockOwner
    order_side: OrderSide
    order_type: OrderType
    shares: int
    status: OrderStatus
    symbol: CompanySymbol

    def verify(self) -> None:
        if self.shares == 0:
            raise OrderVerifyError("order has no shares")


@dataclass
class CentralOrderBook:
    orders: list[Order] = field(default_factory=list)

    def has_orders(self, owner_id: StockOwner) -> bool:
        return any(order.owner_id == owner_id for order in self.orders)

    def get_matching_orders(self, order: Order, skipped: Set[Order] | None = None) -> list[Order]:
        """Opposite-side orders for the same symbol from other owners."""
        skipped = skipped or frozenset()
        return [
            other
            for other in self.orders
            if other.symbol == order.symbol
            and other.order_side != order.order_side
            and other.owner_id != order.owner_id
            and other not in skipped
        ]