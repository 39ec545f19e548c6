"""Reminder timers with a packed schedule field and Chinese date parsing."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

log = logging.getLogger(__name__)

_EN_MASK = 0x800000
_MONTH = (0x780000, 19, 0b1111)
_DAY = (0x07C000, 14, 0b11111)
_WEEK = (0x003800, 11, 0b111)
_HOUR = (0x0007C0, 6, 0b11111)
_MINUTE = (0x00003F, 0, 0b111111)

_DIGITS = "零一二三四五六七八九十"


@dataclass
class Timer:
    """A group reminder: either a cron expression or a packed date pattern.

    ``packed`` holds enabled(1) month(4) day(5) week(3) hour(5) minute(6)
    bits; a field of all ones means "every".
    """

    id: int = 0
    packed: int = 0
    self_id: int = 0
    group_id: int = 0
    alert: str = ""
    cron: str = ""
    url: str = ""

    def _get(self, field: tuple[int, int, int]) -> int:
        mask, shift, ones = field
        value = (self.packed & mask) >> shift
        return -1 if value == ones else value

    def _set(self, field: tuple[int, int, int], value: int) -> None:
        mask, shift, _ = field
        self.packed = ((value << shift) & mask) | (self.packed & (0xFFFFFF ^ mask))

    def _set_en(self, enabled: bool) -> None:
        if enabled:
            self.packed |= _EN_MASK
        else:
            self.packed &= 0x7FFFFF

    def en(self) -> bool:
        return self.packed & _EN_MASK != 0

    def month(self) -> int:
        return self._get(_MONTH)

    def day(self) -> int:
        return self._get(_DAY)

    def week(self) -> int:
        """Weekday with Sunday as 0, or -1 for every week."""
        return self._get(_WEEK)

    def hour(self) -> int:
        return self._get(_HOUR)

    def minute(self) -> int:
        return self._get(_MINUTE)

    def info(self) -> str:
        """Normalised description used to derive the timer id."""
        if self.cron:
            return f"[{self.group_id}]{self.cron}"
        return (
            f"[{self.group_id}]{self.month()}月{self.day()}日{self.week()}周"
            f"{self.hour()}:{self.minute()}"
        )

    def timer_id(self) -> int:
        digest = hashlib.md5(self.info().encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "little")


def filled_cron_timer(cron: str, alert: str, url: str, bot_id: int, group_id: int) -> Timer:
    return Timer(self_id=bot_id, group_id=group_id, alert=alert, cron=cron, url=url)


def filled_timer(date_strs, bot_id: int, group_id: int, match_date_only: bool) -> Timer:
    """Build a timer from regex groups: month, day/week, hour, minute, url, alert.

    On invalid input the returned timer carries the reason in ``alert`` and
    is not enabled.
    """
    month_str, day_week, hour_str, minute_str = date_strs[1:5]
    t = Timer()
    mon = chinese_num_to_int(month_str)
    if (mon != -1 and mon <= 0) or mon > 12:
        t.alert = "月份非法！"
        return t
    t._set(_MONTH, mon)

    if len(day_week) == 4:
        d = chinese_num_to_int(day_week[0] + day_week[2])
        if (d != -1 and d <= 0) or d > 31:
            t.alert = "日期非法1！"
            return t
        t._set(_DAY, d)
    elif day_week[-1] == "日":
        d = chinese_num_to_int(day_week[:-1])
        if (d != -1 and d <= 0) or d > 31:
            t.alert = "日期非法2！"
            return t
        t._set(_DAY, d)
    elif day_week[0] == "每":
        t._set(_WEEK, -1)
    else:
        w = chinese_num_to_int(day_week[1:])
        if w == 7:
            w = 0
        if w < 0 or w > 6:
            t.alert = "星期非法！"
            return t
        t._set(_WEEK, w)

    if len(hour_str) == 3:
        hour_str = hour_str[0] + hour_str[2]
    h = chinese_num_to_int(hour_str)
    if h < -1 or h > 23:
        t.alert = "小时非法！"
        return t
    t._set(_HOUR, h)

    if len(minute_str) == 3:
        minute_str = minute_str[0] + minute_str[2]
    mn = chinese_num_to_int(minute_str)
    if mn < -1 or mn > 59:
        t.alert = "分钟非法！"
        return t
    t._set(_MINUTE, mn)

    if not match_date_only:
        url = date_strs[5]
        if url:
            t.url = url[1:]
            log.debug("[群管]%s", t.url)
            if not t.url.startswith("http"):
                t.url = "illegal"
                log.debug("[群管]url非法！")
                return t
        t.alert = date_strs[6]
        t._set_en(True)
    t.self_id = bot_id
    t.group_id = group_id
    return t


def chinese_num_to_int(text: str) -> int:
    """Convert a one- or two-character number (-10..99); "每" means -1, "每二" -2."""
    if not text:
        raise ValueError("empty number")
    if text[0].isdigit():
        try:
            return int(text)
        except ValueError:
            return 0
    if text[0] == "每":
        return -chinese_char_to_int(text[1]) if len(text) == 2 else -1
    if len(text) == 1:
        return chinese_char_to_int(text[0])
    ten = chinese_char_to_int(text[0])
    if ten != 10:
        ten *= 10
    ones = chinese_char_to_int(text[1])
    if ones == 10:
        ones = 0
    return ten + ones


def chinese_char_to_int(char: str) -> int:
    """Map one Chinese numeral to 0..10; 日 and 天 (Sunday) map to 7."""
    if char in ("日", "天"):
        return 7
    index = _DIGITS.find(char)
    return index if index >= 0 else 0