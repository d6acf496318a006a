import pytest

from marketsim.time_handler import TimeHandler, Timezone


@pytest.mark.parametrize(
    "ticks, expected",
    [
        (10, "10s"),
        (30, "30s"),
        (90, "1m30s"),
        (3600 + 6 * 60 + 40, "1h6m40s"),
    ],
)
def test_get_time_running(ticks, expected):
    handler = TimeHandler(0, wait_millis=1000)
    handler.set_time(ticks)
    assert handler.get_time_running() == expected


def test_time_running_empty_at_start():
    assert TimeHandler(0, wait_millis=1000).get_time_running() == ""


def test_tick_advances_time():
    handler = TimeHandler(0, wait_millis=1000)
    for _ in range(90):
        handler.tick()
    assert handler.time == 90
    assert handler.get_time_running() == "1m30s"


def test_virtual_time_formatting():
    handler = TimeHandler(0, secs_factor=1, wait_millis=100)
    assert handler.get_virtual_time_formatted() == "1970-01-01 08:00:00 HKT"
    assert handler.get_day24hour() == 8
    handler.set_time(60 * 60 * 10)
    assert handler.get_virtual_time_formatted() == "1970-01-01 09:00:00 HKT"
    assert handler.get_day24hour() == 9


def test_day_and_year_formatted():
    handler = TimeHandler(0, secs_factor=1, wait_millis=100)
    assert handler.get_virtual_day_formatted() == "1970-01-01"
    assert handler.get_virtual_year_formatted() == "1970"


def test_weekday_of_epoch_is_thursday():
    assert TimeHandler(0).get_weekday() == 3


def test_utc_timezone():
    handler = TimeHandler(0, tz=Timezone.UTC)
    assert handler.get_virtual_time_formatted() == "1970-01-01 00:00:00 UTC"
    assert str(Timezone.UTC) == "UTC"
    assert str(Timezone.HK) == "UTC+08"


def test_running_seconds():
    handler = TimeHandler(0, secs_factor=1, wait_millis=100)
    handler.set_time(36000)
    assert handler.get_running_seconds() == 3600
    assert handler.get_now_unix_timestamp() == 3600


def test_n_days_from_now():
    handler = TimeHandler(1000)
    assert handler.get_n_days_from_now_unix_timestamp(2) == 1000 + 2 * 86400


def test_year_weekdays():
    days = TimeHandler(0).get_year_weekdays("2024")
    assert len(days) == 262
    assert days[0] == "2024-01-01"
    assert all(day.startswith("2024-") for day in days)
    assert len(set(days)) == len(days)


def test_year_weekdays_rejects_bad_year():
    with pytest.raises(ValueError):
        TimeHandler(0).get_year_weekdays("not-a-year")