import pytest

from marketsim.company import CompanySymbol
from marketsim.order import (
    CentralOrderBook,
    Order,
    OrderSide,
    OrderStatus,
    OrderType,
    OrderVerifyError,
)
from marketsim.stock import StockOwner


def _order(owner=None, side=OrderSide.BUY, shares=1, symbol="AAPL", order_type=None):
    return Order(
        owner_id=owner if owner is not None else StockOwner.investor(0),
        order_side=side,
        order_type=order_type if order_type is not None else OrderType.market(),
        shares=shares,
        status=OrderStatus.INIT,
        symbol=CompanySymbol(symbol),
    )


def test_compare_orders():
    first = Order(
        owner_id=StockOwner.investor(0),
        order_side=OrderSide.BUY,
        order_type=OrderType.market(),
        shares=1,
        status=OrderStatus.INIT,
        symbol=CompanySymbol("AAPL"),
    )
    second = Order(
        owner_id=StockOwner.investor(0),
        order_side=OrderSide.BUY,
        order_type=OrderType.market(),
        shares=1,
        status=OrderStatus.INIT,
        symbol=CompanySymbol("AAPL"),
    )
    assert first == second
    assert hash(first) == hash(second)
    assert len({first, second}) == 1
    assert first.shares == 1
    assert first.symbol == CompanySymbol("AAPL")


def test_orders_differ_by_type():
    assert _order(order_type=OrderType.limit("10")) != _order()
    assert OrderType.limit("10").limit_price == "10"
    assert OrderType.market().is_market is True


def test_verify_zero_shares():
    with pytest.raises(OrderVerifyError):
        _order(shares=0).verify()
    _order(shares=3).verify()
    assert _order(shares=3).shares == 3


def test_has_orders():
    book = CentralOrderBook([_order(owner=StockOwner.investor(1))])
    assert book.has_orders(StockOwner.investor(1)) is True
    assert book.has_orders(StockOwner.investor(2)) is False


def test_get_matching_orders():
    buy = _order(owner=StockOwner.investor(1), side=OrderSide.BUY)
    sell_other = _order(owner=StockOwner.investor(2), side=OrderSide.SELL)
    sell_same_owner = _order(owner=StockOwner.investor(1), side=OrderSide.SELL)
    sell_other_symbol = _order(owner=StockOwner.investor(3), side=OrderSide.SELL, symbol="MSFT")
    buy_other = _order(owner=StockOwner.investor(4), side=OrderSide.BUY)
    book = CentralOrderBook([buy, sell_other, sell_same_owner, sell_other_symbol, buy_other])
    assert book.get_matching_orders(buy) == [sell_other]
    assert book.get_matching_orders(buy, None) == [sell_other]


def test_get_matching_orders_skips():
    buy = _order(owner=StockOwner.investor(1), side=OrderSide.BUY)
    sell_a = _order(owner=StockOwner.investor(2), side=OrderSide.SELL, shares=2)
    sell_b = _order(owner=StockOwner.market_maker(1), side=OrderSide.SELL, shares=5)
    book = CentralOrderBook([buy, sell_a, sell_b])
    assert book.get_matching_orders(buy, {sell_a}) == [sell_b]
    assert book.get_matching_orders(buy, {sell_a, sell_b}) == []