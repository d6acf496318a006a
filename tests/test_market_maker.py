import pytest

from marketsim.market_maker import MarketMaker, MarketMakers, MarketMakerVerifyError
from marketsim.time_handler import TimeHandler

NOW = 1_000_000


def test_verify_valid_permit():
    maker = MarketMaker(id=1, permit_start_time=NOW, permit_end_time=NOW + 500)
    maker.verify(TimeHandler(NOW))
    assert maker.permit_end_time > maker.permit_start_time


def test_verify_start_after_end():
    maker = MarketMaker(id=1, permit_start_time=NOW + 10, permit_end_time=NOW + 10)
    with pytest.raises(MarketMakerVerifyError):
        maker.verify(TimeHandler(NOW))


def test_verify_start_in_past():
    maker = MarketMaker(id=1, permit_start_time=NOW - 1, permit_end_time=NOW + 100)
    with pytest.raises(MarketMakerVerifyError):
        maker.verify(TimeHandler(NOW))


def test_next_id_sequence():
    makers = MarketMakers()
    first = makers.next_id()
    second = makers.next_id()
    assert second == first + 1
    assert makers.last_id == second


def test_register_market_maker():
    makers = MarketMakers()
    maker_id = makers.next_id()
    makers.mapping[maker_id] = MarketMaker(maker_id, NOW, NOW + 10)
    assert makers.mapping[maker_id].id == maker_id