from datetime import datetime

import pytest

from zeroplugins.schedule import first_week, next_wake_time, should_fire
from zeroplugins.timer import filled_timer


def weekly_timer():
    return filled_timer(["", "每", "周六", "16", "30", "", "x"], 0, 0, False)


def test_next_wake_time_not_in_past():
    now = datetime(2022, 7, 8, 12, 0, 0)
    assert next_wake_time(weekly_timer(), now) > now


def test_next_wake_time_weekly():
    now = datetime(2022, 7, 8, 12, 0, 0)
    assert next_wake_time(weekly_timer(), now) == datetime(2022, 7, 9, 16, 30, 0)


@pytest.mark.parametrize(
    "strs",
    [
        ["", "每", "每日", "8", "0", "", "x"],
        ["", "12", "1日", "12", "0", "", "x"],
        ["", "每", "每周", "每", "每", "", "x"],
        ["", "3", "周一", "9", "15", "", "x"],
        ["", "每", "15日", "每", "5", "", "x"],
    ],
)
@pytest.mark.parametrize(
    "now",
    [datetime(2022, 7, 8, 12, 0, 0), datetime(2022, 12, 31, 23, 59, 30), datetime(2024, 2, 29, 0, 0)],
)
def test_next_wake_time_always_future(strs, now):
    assert next_wake_time(filled_timer(strs, 0, 0, False), now) > now


def test_first_week():
    d = first_week(datetime(2022, 7, 20, 10, 0), 1)
    assert d.month == 7
    assert d.day <= 7
    assert d.isoweekday() % 7 == 1
    assert d.hour == 10


def test_first_week_invalid():
    with pytest.raises(ValueError):
        first_week(datetime(2022, 7, 20), -1)


def test_should_fire():
    t = weekly_timer()
    assert should_fire(t, datetime(2022, 7, 9, 16, 30))
    assert not should_fire(t, datetime(2022, 7, 9, 16, 31))
    assert not should_fire(t, datetime(2022, 7, 8, 16, 30))


def test_should_fire_disabled():
    t = filled_timer(["", "每", "周六", "16", "30"], 0, 0, True)
    assert not should_fire(t, datetime(2022, 7, 9, 16, 30))