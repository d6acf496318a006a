"""The market simulation: initial population and per-tick updates."""

from __future__ import annotations

import dataclasses
import logging
import math
import random
from decimal import Decimal
from typing import Protocol

from marketsim.company import Companies
from marketsim.fake_data import (
    generate_companies,
    generate_investors,
    generate_ipos,
    generate_listed_companies,
    generate_market_makers,
)
from marketsim.investor import Investor
from marketsim.money import Currency, Money, gen_from_range, round_money
from marketsim.order import Order, OrderSide, OrderStatus, OrderType
from marketsim.price import Price, Prices
from marketsim.settings import SimulationSettings
from marketsim.stock import Stock, StockOwner
from marketsim.stock_exchange import StockExchange
from marketsim.time_handler import TimeHandler

logger = logging.getLogger(__name__)

_INITIAL_COMPANIES = 100
_INITIAL_IPOS = 10
_INITIAL_INVESTORS = 1000
_INITIAL_MARKET_MAKERS = 10


class SaveHistoricPriceError(Exception):
    """Raised when historic prices cannot be stored."""

    def __init__(self, message: str, fatal: bool = False) -> None:
        super().__init__(message)
        self.fatal = fatal


class PriceStorage(Protocol):
    """Somewhere to keep the price history."""

    def save_historic_price(self, prices: Prices, time: TimeHandler) -> None:
        """Store ``prices`` as seen at the current virtual time."""


def flush_data(redis_storage, prometheus_storage) -> None:
    """Wipe the stored state and the collected metrics."""
    redis_storage.flush_data()
    prometheus_storage.flush_metrics()


class Simulation:
    """Drives a stock exchange with random investors and orders."""

    def __init__(
        self,
        seed: bytes | int,
        settings: SimulationSettings,
        price_storage: PriceStorage,
    ) -> None:
        self.settings = settings
        self._rng = random.Random(seed)
        self._price_storage = price_storage
        self._daily_checks: str | None = None

    # Initial population

    def _create_valid_new_investor(self, se: StockExchange, time: TimeHandler) -> Investor:
        while True:
            candidates = generate_investors(1, time, self._rng)
            for candidate in candidates.mapping.values():
                investor = dataclasses.replace(candidate, id=se.investors.next_id())
                if investor.id not in se.investors.mapping:
                    investor.verify(time)
                    return investor

    def _assign_stocks_to_investors(self, se: StockExchange) -> None:
        investors = [se.investors.mapping[key] for key in sorted(se.investors.mapping)]
        if not investors:
            raise ValueError("there are no investors to hold stocks")

        for company in se.listed_companies.get_list():
            remaining = company.total_stocks
            while remaining > 0:
                investor = self._rng.choice(investors)
                remaining_lots = remaining // company.lot_size
                quantity = self._rng.randint(1, remaining_lots) * company.lot_size
                price = Money(gen_from_range(self._rng, 1.0, 100.0), Currency.HKD)
                stock = Stock(
                    owner=StockOwner.investor(investor.id),
                    price=price,
                    quantity=quantity,
                    symbol=company.symbol,
                )
                se.owned_stocks.stocks_of(stock.owner).append(stock)
                remaining -= quantity

    @staticmethod
    def _calculate_prices(se: StockExchange) -> None:
        for company in se.listed_companies.get_list():
            average = Money.calculate_average(se.owned_stocks.get_prices(company.symbol))
            se.prices.mapping[company.symbol] = Price(ask=average, bid=average)

    def init(self, se: StockExchange, time: TimeHandler) -> None:
        """Populate ``se`` with companies, investors, holdings and prices."""
        se.companies = generate_companies(Companies(), _INITIAL_COMPANIES, self._rng)
        se.listed_companies = generate_listed_companies(se.companies, self._rng)

        ipo_companies = generate_companies(se.companies, _INITIAL_IPOS, self._rng)
        se.companies.mapping.update(ipo_companies.mapping)
        se.ipos = generate_ipos(ipo_companies, time, self._rng)

        se.investors = generate_investors(_INITIAL_INVESTORS, time, self._rng)
        se.market_makers = generate_market_makers(_INITIAL_MARKET_MAKERS, time, self._rng)

        self._assign_stocks_to_investors(se)
        self._calculate_prices(se)

    # Daily checks

    def _verify_holidays(self, se: StockExchange, time: TimeHandler) -> None:
        year = time.get_virtual_year_formatted()
        if year in se.holidays:
            return
        num_days = self._rng.randint(15, 20)
        weekdays = time.get_year_weekdays(year)
        holidays: set[str] = set()
        while len(holidays) < num_days:
            holidays.add(weekdays[self._rng.randint(0, len(weekdays) - 1)])
        se.holidays[year] = holidays

    def _verify_investors(self, se: StockExchange, time: TimeHandler) -> None:
        to_remove = []
        for key in sorted(se.investors.mapping):
            investor = se.investors.mapping[key]
            age = investor.get_age(time)
            if age > self.settings.max_investor_age:
                to_remove.append(investor.id)
                logger.debug("Removed investor in simulation because too old: %s", investor.id)
                continue
            death_rate = math.ceil(0.25 * age / 365.0)
            if self._rng.randrange(100) < death_rate:
                to_remove.append(investor.id)
                logger.debug("Removed investor in simulation because dead: %s", investor.id)

        for investor_id in to_remove:
            del se.investors.mapping[investor_id]

        to_add = self._rng.randint(0, 10) - 7
        for _ in range(max(0, to_add)):
            investor = self._create_valid_new_investor(se, time)
            se.investors.mapping[investor.id] = investor

    # Trading

    def _choose_side(self, can_buy: bool, has_stocks: bool) -> OrderSide | None:
        if can_buy and has_stocks:
            return OrderSide.BUY if self._rng.random() < 0.5 else OrderSide.SELL
        if can_buy:
            return OrderSide.BUY
        if has_stocks:
            return OrderSide.SELL
        return None

    def _sell_order(self, se: StockExchange, owner: StockOwner) -> Order:
        stock = self._rng.choice(se.owned_stocks.mapping[owner])
        lot_size = se.listed_companies.mapping[stock.symbol].lot_size
        lots = self._rng.randint(1, stock.quantity // lot_size)
        return Order(
            owner_id=owner,
            order_side=OrderSide.SELL,
            order_type=OrderType.market(),
            shares=lots * lot_size,
            status=OrderStatus.INIT,
            symbol=stock.symbol,
        )

    def _buy_order(self, se: StockExchange, investor: Investor, owner: StockOwner) -> Order | None:
        cash = investor.liquid_cash.value
        affordable = []
        for company in se.listed_companies.get_list():
            ask = se.prices.get_ask_price(company.symbol)
            if ask is None:
                continue
            per_lot = ask.value * Decimal(company.lot_size)
            if cash > per_lot:
                affordable.append((company, per_lot))
        if not affordable:
            return None

        company, per_lot = self._rng.choice(affordable)
        max_lots = int(cash // per_lot)
        if max_lots == 0:
            return None
        lots = self._rng.randint(1, max_lots)
        return Order(
            owner_id=owner,
            order_side=OrderSide.BUY,
            order_type=OrderType.market(),
            shares=lots * company.lot_size,
            status=OrderStatus.INIT,
            symbol=company.symbol,
        )

    def _create_new_orders(self, se: StockExchange, time: TimeHandler) -> None:
        for _ in range(self._rng.randint(0, self.settings.max_orders_per_tick)):
            investor = se.investors.get_random(self._rng)
            lowest_bid = se.prices.get_lowest_bid_price()
            can_buy = lowest_bid is None or investor.liquid_cash.value > lowest_bid.value
            owner = StockOwner.investor(investor.id)
            if se.orders_book.has_orders(owner):
                continue

            side = self._choose_side(can_buy, se.owned_stocks.has_stocks(owner))
            if side is OrderSide.SELL:
                order = self._sell_order(se, owner)
            elif side is OrderSide.BUY:
                order = self._buy_order(se, investor, owner)
            else:
                order = None

            if order is not None:
                se.place_order(order, time)

    def _update_prices(self, se: StockExchange) -> None:
        new_prices = {}
        for symbol in sorted(se.prices.mapping):
            price = se.prices.mapping[symbol]
            average = price.get_average().value
            change = round_money(self._rng.uniform(-0.1, 0.1))
            new_price = round_money(average + change)
            spread = round_money(self._rng.uniform(0.1, 2.0))
            new_prices[symbol] = price.get_with_spread(new_price, spread)
        se.prices = Prices(new_prices)

    def run(self, se: StockExchange, time: TimeHandler) -> None:
        """Advance the exchange by one tick."""
        current_day = time.get_virtual_day_formatted()
        if self._daily_checks != current_day:
            self._verify_holidays(se, time)
            self._verify_investors(se, time)
            self._daily_checks = current_day

        if se.can_trade_now(time):
            self._create_new_orders(se, time)
            se.execute_orders()
        else:
            se.flush_orders()

        self._update_prices(se)
        self._price_storage.save_historic_price(se.prices, time)