"""Saving and loading the simulation state, and price history storage."""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from marketsim.broker import Broker, Brokers, BrokerType
from marketsim.company import (
    Companies,
    Company,
    CompanySymbol,
    Ipo,
    Ipos,
    ListedCompanies,
    ListedCompany,
)
from marketsim.investor import Investor, Investors
from marketsim.market_maker import MarketMaker, MarketMakers
from marketsim.money import Currency, Money
from marketsim.order import (
    CentralOrderBook,
    Order,
    OrderSide,
    OrderStatus,
    OrderType,
)
from marketsim.price import Price, Prices
from marketsim.settings import SimulationSettings
from marketsim.simulation import SaveHistoricPriceError
from marketsim.stock import OwnedStocks, Stock, StockOwner
from marketsim.stock_exchange import StockExchange, StockExchangeSettings
from marketsim.storage import PrometheusStorage, RedisStorage, StorageError
from marketsim.time_handler import TimeHandler, Timezone

STATE_KEY = "simulation_state"


class LoadSimulationStateError(Exception):
    """Raised when a stored simulation state cannot be used."""


class EmptyStateError(LoadSimulationStateError):
    """Raised when no simulation state has been stored."""


class _KeyValueStore(Protocol):
    def save_key(self, key: str, value: str) -> None: ...

    def load_key(self, key: str) -> str: ...


class _SortedSetStore(Protocol):
    def append_sorted_set(self, key: str, score: int, value: str) -> None: ...


def _dec(value: Decimal) -> str:
    return format(value, "f")


def _money_out(money: Money) -> dict[str, Any]:
    return {"currency": money.currency.value, "value": _dec(money.value)}


def _money_in(data: dict[str, Any]) -> Money:
    return Money(Decimal(data["value"]), Currency(data["currency"]))


def _time_out(time: TimeHandler) -> dict[str, Any]:
    return {
        "initial_time": time.initial_time,
        "secs_factor": time.secs_factor,
        "tz": time.tz.value,
        "millis_to_wait_millis": time.wait_millis,
        "time": time.time,
    }


def _time_in(data: dict[str, Any]) -> TimeHandler:
    return TimeHandler(
        initial_time=int(data["initial_time"]),
        secs_factor=int(data["secs_factor"]),
        wait_millis=int(data["millis_to_wait_millis"]),
        tz=Timezone(data["tz"]),
        time=int(data["time"]),
    )


def _order_type_out(order_type: OrderType) -> Any:
    if order_type.is_market:
        return "Market"
    return {"Limit": {"price": order_type.limit_price}}


def _order_type_in(data: Any) -> OrderType:
    if data == "Market":
        return OrderType.market()
    if isinstance(data, dict) and "Limit" in data:
        return OrderType.limit(data["Limit"]["price"])
    raise ValueError(f"invalid order type: {data!r}")


def _order_out(order: Order) -> dict[str, Any]:
    return {
        "owner_id": str(order.owner_id),
        "order_side": order.order_side.value,
        "order_type": _order_type_out(order.order_type),
        "shares": order.shares,
        "status": order.status.value,
        "symbol": str(order.symbol),
    }


def _order_in(data: dict[str, Any]) -> Order:
    return Order(
        owner_id=StockOwner.parse(data["owner_id"]),
        order_side=OrderSide(data["order_side"]),
        order_type=_order_type_in(data["order_type"]),
        shares=int(data["shares"]),
        status=OrderStatus(data["status"]),
        symbol=CompanySymbol(data["symbol"]),
    )


def _stock_out(stock: Stock) -> dict[str, Any]:
    return {
        "owner": str(stock.owner),
        "price": _money_out(stock.price),
        "quantity": stock.quantity,
        "symbol": str(stock.symbol),
    }


def _stock_in(data: dict[str, Any]) -> Stock:
    return Stock(
        owner=StockOwner.parse(data["owner"]),
        price=_money_in(data["price"]),
        quantity=int(data["quantity"]),
        symbol=CompanySymbol(data["symbol"]),
    )


def _exchange_out(se: StockExchange) -> dict[str, Any]:
    settings = se.settings
    return {
        "brokers": {
            "last_id": se.brokers.last_id,
            "mapping": {
                str(key): {
                    "broker_type": broker.broker_type.value,
                    "handling_fee": _money_out(broker.handling_fee),
                    "id": broker.id,
                    "name": broker.name,
                }
                for key, broker in sorted(se.brokers.mapping.items())
            },
        },
        "companies": {
            "mapping": {
                str(symbol): {"name": company.name, "symbol": str(company.symbol)}
                for symbol, company in sorted(se.companies.mapping.items())
            }
        },
        "holidays": {year: sorted(days) for year, days in sorted(se.holidays.items())},
        "investors": {
            "last_id": se.investors.last_id,
            "mapping": {
                str(key): {
                    "debt": _money_out(investor.debt),
                    "dob": investor.dob,
                    "id": investor.id,
                    "liquid_cash": _money_out(investor.liquid_cash),
                    "name": investor.name,
                }
                for key, investor in sorted(se.investors.mapping.items())
            },
        },
        "ipos": {
            "mapping": {
                str(symbol): {
                    "symbol": str(ipo.symbol),
                    "shares": ipo.shares,
                    "lot_size": ipo.lot_size,
                    "date": ipo.date,
                }
                for symbol, ipo in sorted(se.ipos.mapping.items())
            }
        },
        "listed_companies": {
            "mapping": {
                str(symbol): {
                    "lot_size": listed.lot_size,
                    "symbol": str(listed.symbol),
                    "total_stocks": listed.total_stocks,
                }
                for symbol, listed in sorted(se.listed_companies.mapping.items())
            }
        },
        "market_makers": {
            "last_id": se.market_makers.last_id,
            "mapping": {
                str(key): {
                    "id": maker.id,
                    "permit_end_time": maker.permit_end_time,
                    "permit_start_time": maker.permit_start_time,
                }
                for key, maker in sorted(se.market_makers.mapping.items())
            },
        },
        "orders_book": [_order_out(order) for order in se.orders_book.orders],
        "owned_stocks": {
            str(owner): [_stock_out(stock) for stock in stocks]
            for owner, stocks in sorted(se.owned_stocks.mapping.items())
        },
        "prices": {
            str(symbol): {"ask": _money_out(price.ask), "bid": _money_out(price.bid)}
            for symbol, price in sorted(se.prices.mapping.items())
        },
        "settings": {
            "currency": settings.currency.value,
            "location": settings.location,
            "name": settings.name,
            "timezone": settings.timezone,
            "trading_days": list(settings.trading_days),
            "trading_hours": list(settings.trading_hours),
        },
    }


def _exchange_in(data: dict[str, Any]) -> StockExchange:
    brokers = data["brokers"]
    investors = data["investors"]
    makers = data["market_makers"]
    settings = data["settings"]
    return StockExchange(
        brokers=Brokers(
            last_id=int(brokers["last_id"]),
            mapping={
                int(key): Broker(
                    broker_type=BrokerType(item["broker_type"]),
                    handling_fee=_money_in(item["handling_fee"]),
                    id=int(item["id"]),
                    name=item["name"],
                )
                for key, item in brokers["mapping"].items()
            },
        ),
        companies=Companies(
            {
                CompanySymbol(key): Company(item["name"], CompanySymbol(item["symbol"]))
                for key, item in data["companies"]["mapping"].items()
            }
        ),
        holidays={year: set(days) for year, days in data["holidays"].items()},
        investors=Investors(
            last_id=int(investors["last_id"]),
            mapping={
                int(key): Investor(
                    id=int(item["id"]),
                    name=item["name"],
                    dob=int(item["dob"]),
                    liquid_cash=_money_in(item["liquid_cash"]),
                    debt=_money_in(item["debt"]),
                )
                for key, item in investors["mapping"].items()
            },
        ),
        ipos=Ipos(
            {
                CompanySymbol(key): Ipo(
                    symbol=CompanySymbol(item["symbol"]),
                    shares=int(item["shares"]),
                    lot_size=int(item["lot_size"]),
                    date=int(item["date"]),
                )
                for key, item in data["ipos"]["mapping"].items()
            }
        ),
        listed_companies=ListedCompanies(
            {
                CompanySymbol(key): ListedCompany(
                    lot_size=int(item["lot_size"]),
                    symbol=CompanySymbol(item["symbol"]),
                    total_stocks=int(item["total_stocks"]),
                )
                for key, item in data["listed_companies"]["mapping"].items()
            }
        ),
        market_makers=MarketMakers(
            last_id=int(makers["last_id"]),
            mapping={
                int(key): MarketMaker(
                    id=int(item["id"]),
                    permit_start_time=int(item["permit_start_time"]),
                    permit_end_time=int(item["permit_end_time"]),
                )
                for key, item in makers["mapping"].items()
            },
        ),
        orders_book=CentralOrderBook([_order_in(item) for item in data["orders_book"]]),
        owned_stocks=OwnedStocks(
            {
                StockOwner.parse(key): [_stock_in(item) for item in items]
                for key, items in data["owned_stocks"].items()
            }
        ),
        prices=Prices(
            {
                CompanySymbol(key): Price(ask=_money_in(item["ask"]), bid=_money_in(item["bid"]))
                for key, item in data["prices"].items()
            }
        ),
        settings=StockExchangeSettings(
            currency=Currency(settings["currency"]),
            location=settings["location"],
            name=settings["name"],
            timezone=settings["timezone"],
            trading_days=[int(day) for day in settings["trading_days"]],
            trading_hours=[int(hour) for hour in settings["trading_hours"]],
        ),
    )


@dataclass
class SimulationState:
    """Everything needed to resume a simulation."""

    time: TimeHandler
    se: StockExchange

    def to_json(self) -> str:
        return json.dumps({"time": _time_out(self.time), "se": _exchange_out(self.se)})

    @classmethod
    def from_json(cls, text: str) -> SimulationState:
        try:
            data = json.loads(text)
            return cls(time=_time_in(data["time"]), se=_exchange_in(data["se"]))
        except (ValueError, KeyError, TypeError, AttributeError, ArithmeticError) as exc:
            raise LoadSimulationStateError(f"Failed to deserialize state: {exc}") from exc


def save_simulation_state(redis: _KeyValueStore, state: SimulationState) -> None:
    redis.save_key(STATE_KEY, state.to_json())


def load_simulation_state(redis: _KeyValueStore) -> SimulationState:
    """Load the stored state; EmptyStateError if none can be read."""
    try:
        text = redis.load_key(STATE_KEY)
    except StorageError as exc:
        raise EmptyStateError(str(exc)) from exc
    return SimulationState.from_json(text)


class RedisPriceStorage:
    """Keeps each symbol's mid price history in a sorted set."""

    def __init__(self, redis: _SortedSetStore) -> None:
        self.redis = redis

    def save_historic_price(self, prices: Prices, time: TimeHandler) -> None:
        now = time.get_now_unix_timestamp()
        for symbol in sorted(prices.mapping):
            average = prices.mapping[symbol].get_average().value
            try:
                self.redis.append_sorted_set(f"price:{symbol}", now, f"{now},{_dec(average)}")
            except StorageError as exc:
                raise SaveHistoricPriceError(str(exc)) from exc


def prometheus_storage_from_settings(settings: SimulationSettings) -> PrometheusStorage:
    return PrometheusStorage(job_name=settings.prometheus_job_name, url=settings.prometheus_url)


def redis_storage_from_settings(settings: SimulationSettings) -> RedisStorage:
    return RedisStorage(settings.redis_url)