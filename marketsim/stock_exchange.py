"""The stock exchange: its state, trading hours and order matching."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from marketsim.broker import Brokers
from marketsim.company import Companies, CompanySymbol, Ipos, ListedCompanies
from marketsim.investor import Investors
from marketsim.market_maker import MarketMakers
from marketsim.money import Currency, Money
from marketsim.order import CentralOrderBook, Order, OrderSide, OrderVerifyError
from marketsim.price import Prices
from marketsim.stock import OwnedStocks, OwnerKind, Stock, StockOwner
from marketsim.time_handler import TimeHandler


@dataclass
class StockExchangeSettings:
    currency: Currency = Currency.HKD
    location: str = ""
    name: str = ""
    timezone: str = ""
    trading_days: list[int] = field(default_factory=list)
    trading_hours: list[int] = field(default_factory=list)


class PlaceOrderError(Exception):
    """Raised when an order cannot be placed."""


class CantTradeNowError(PlaceOrderError):
    """The exchange is closed at the current virtual time."""


class InvalidOrderError(PlaceOrderError):
    """The order failed verification."""


@dataclass
class StockExchange:
    brokers: Brokers = field(default_factory=Brokers)
    companies: Companies = field(default_factory=Companies)
    holidays: dict[str, set[str]] = field(default_factory=dict)
    investors: Investors = field(default_factory=Investors)
    ipos: Ipos = field(default_factory=Ipos)
    listed_companies: ListedCompanies = field(default_factory=ListedCompanies)
    market_makers: MarketMakers = field(default_factory=MarketMakers)
    orders_book: CentralOrderBook = field(default_factory=CentralOrderBook)
    owned_stocks: OwnedStocks = field(default_factory=OwnedStocks)
    prices: Prices = field(default_factory=Prices)
    settings: StockExchangeSettings = field(default_factory=StockExchangeSettings)

    def can_trade_now(self, time: TimeHandler) -> bool:
        """Open on trading days and hours, closed on holidays."""
        if time.get_weekday() not in self.settings.trading_days:
            return False
        year_holidays = self.holidays.get(time.get_virtual_year_formatted(), set())
        if time.get_virtual_day_formatted() in year_holidays:
            return False
        return time.get_day24hour() in self.settings.trading_hours

    def place_order(self, order: Order, time: TimeHandler) -> None:
        if not self.can_trade_now(time):
            raise CantTradeNowError("the exchange is closed")
        try:
            order.verify()
        except OrderVerifyError as exc:
            raise InvalidOrderError(str(exc)) from exc
        self.orders_book.orders.append(order)

    def flush_orders(self) -> None:
        self.orders_book = CentralOrderBook()

    def _find_affordable(
        self, order: Order, candidates: list[Order]
    ) -> tuple[StockOwner, Money, Order] | None:
        for other in candidates:
            price = self.prices.get_average_price(order.symbol)
            if price is None:
                continue
            total = price.value * Decimal(other.shares)
            payer = order.owner_id if order.order_side is OrderSide.BUY else other.owner_id

            limit = order.order_type.limit_price
            if limit is not None:
                limit_value = Decimal(limit)
                if order.order_side is OrderSide.BUY:
                    if limit_value < total:
                        continue
                elif limit_value > total:
                    continue

            if payer.kind is OwnerKind.INVESTOR:
                if self.investors.mapping[payer.id].liquid_cash.value < total:
                    continue
            return payer, Money(total, price.currency), other
        return None

    @staticmethod
    def _remove_shares(stocks: list[Stock], symbol: CompanySymbol, shares: int) -> None:
        for stock in (s for s in stocks if s.symbol == symbol):
            remaining = max(0, shares - stock.quantity)
            if remaining == 0:
                stock.quantity -= shares
                break
            shares = remaining
            stock.quantity = 0
        stocks[:] = [stock for stock in stocks if stock.quantity > 0]

    def execute_orders(self) -> None:
        """Match orders in the book, moving cash and shares between owners."""
        to_remove: set[Order] = set()

        for order in list(self.orders_book.orders):
            candidates = self.orders_book.get_matching_orders(order, to_remove)
            if order in to_remove:
                continue

            match = self._find_affordable(order, candidates)
            if match is None:
                continue
            payer, total_pay, counter = match

            to_remove.add(counter)
            to_remove.add(order)

            if payer.kind is OwnerKind.INVESTOR:
                self.investors.mapping[payer.id].subtract_cash(total_pay)
            seller = counter.owner_id
            if seller.kind is OwnerKind.INVESTOR:
                self.investors.mapping[seller.id].add_cash(total_pay)

            new_stock = Stock(
                owner=payer,
                price=self.prices.mapping[order.symbol].get_average(),
                quantity=counter.shares,
                symbol=order.symbol,
            )
            self.owned_stocks.stocks_of(payer).append(new_stock)
            self._remove_shares(self.owned_stocks.stocks_of(seller), order.symbol, counter.shares)

        if to_remove:
            self.orders_book.orders = [
                order for order in self.orders_book.orders if order not in to_remove
            ]