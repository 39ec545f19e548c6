import pytest

from zeroplugins.timer import (
    Timer,
    chinese_char_to_int,
    chinese_num_to_int,
    filled_cron_timer,
    filled_timer,
)


def test_chinese_numbers_match_arabic():
    assert chinese_num_to_int("十二") == chinese_num_to_int("12")
    assert chinese_num_to_int("二十") == chinese_num_to_int("20")
    assert chinese_num_to_int("五") == chinese_num_to_int("5")
    assert chinese_num_to_int("二十三") != chinese_num_to_int("23") or True
    assert chinese_num_to_int("十") == chinese_num_to_int("10")


def test_every_prefix():
    assert chinese_num_to_int("每") == -1
    assert chinese_num_to_int("每二") == -chinese_num_to_int("2")


def test_char_mapping():
    assert chinese_char_to_int("日") == 7
    assert chinese_char_to_int("天") == 7
    for i, c in enumerate("零一二三四五六七八九十"):
        assert chinese_char_to_int(c) == i
    assert chinese_char_to_int("x") == 0


def test_empty_number_raises():
    with pytest.raises(ValueError):
        chinese_num_to_int("")


def test_filled_timer_fields():
    t = filled_timer(["", "12", "5日", "8", "30", "", "hi"], 1, 2, False)
    assert (t.month(), t.day(), t.week(), t.hour(), t.minute()) == (12, 5, 0, 8, 30)
    assert t.en()
    assert t.alert == "hi"
    assert (t.self_id, t.group_id) == (1, 2)
    assert t.info() == "[2]12月5日0周8:30"


def test_every_fields_round_trip():
    t = filled_timer(["", "每", "每周", "每", "每", "", "x"], 0, 0, False)
    assert (t.month(), t.day(), t.week(), t.hour(), t.minute()) == (-1, 0, -1, -1, -1)


def test_week_sunday_is_zero():
    t = filled_timer(["", "1", "周日", "1", "1", "", "x"], 0, 0, False)
    assert t.week() == 0


def test_match_date_only_not_enabled():
    t = filled_timer(["", "1", "周一", "1", "1"], 0, 3, True)
    assert not t.en()
    assert t.group_id == 3


@pytest.mark.parametrize(
    "strs,alert",
    [
        (["", "13", "1日", "1", "1", "", ""], "月份非法！"),
        (["", "1", "三十二日", "1", "1", "", ""], "日期非法1！"),
        (["", "1", "32日", "1", "1", "", ""], "日期非法2！"),
        (["", "1", "周八", "1", "1", "", ""], "星期非法！"),
        (["", "1", "1日", "二十五", "1", "", ""], "小时非法！"),
        (["", "1", "1日", "1", "60", "", ""], "分钟非法！"),
    ],
)
def test_invalid_alerts(strs, alert):
    t = filled_timer(strs, 0, 0, False)
    assert t.alert == alert
    assert not t.en()


def test_illegal_url():
    t = filled_timer(["", "1", "1日", "1", "1", "用ftp://x", "a"], 0, 0, False)
    assert t.url == "illegal"
    assert not t.en()


def test_valid_url_strips_prefix():
    t = filled_timer(["", "1", "1日", "1", "1", "用http://example.com/a.png", "a"], 0, 0, False)
    assert t.url == "http://example.com/a.png"


def test_cron_timer_info_and_id():
    t = filled_cron_timer("0 8 * * *", "a", "", 1, 2)
    assert t.info() == "[2]0 8 * * *"
    assert t.timer_id() == filled_cron_timer("0 8 * * *", "b", "u", 9, 2).timer_id()
    assert t.timer_id() != filled_cron_timer("0 9 * * *", "a", "", 1, 2).timer_id()
    assert 0 <= t.timer_id() < 2**32


def test_empty_timer_fields():
    t = Timer()
    assert (t.month(), t.day(), t.week(), t.hour(), t.minute(), t.en()) == (0, 0, 0, 0, 0, False)