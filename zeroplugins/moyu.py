"""Slacking-off reminder: countdowns to weekends and public holidays."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

HOLIDAY_NAMES = ("元旦", "春节", "清明节", "劳动节", "端午节", "中秋节", "国庆节")

GREETING = (
    "上午好，摸鱼人！\n工作再累，一定不要忘记摸鱼哦！有事没事起身去茶水间，去厕所，"
    "去廊道走走别老在工位上坐着，钱是老板的,但命是自己的。\n"
)
CLOSING = "上班是帮老板赚钱，摸鱼是赚老板的钱！最后，祝愿天下所有摸鱼人，都能愉快的渡过每一天…"

_VALUE_RE = re.compile(r"\s*(-?\d+)_(-?\d+)_(-?\d+)_(-?\d+)")


@dataclass(frozen=True)
class Holiday:
    """A public holiday starting at ``date`` and lasting ``duration``."""

    name: str
    date: datetime
    duration: timedelta

    def describe(self, now: datetime) -> str:
        """Countdown, "enjoy it" or "already over" text as seen at ``now``."""
        remaining = self.date - now
        if remaining >= timedelta(0):
            days = remaining.total_seconds() / 86400.0
            return f"距离{self.name}还有: {days:.2f}天！"
        if remaining + self.duration >= timedelta(0):
            return f"好好享受 {self.name} 假期吧!"
        return f"今年 {self.name} 假期已过"


def parse_holiday(name: str, value: str) -> Holiday:
    """Build a holiday from a ``days_year_month_day`` registry value."""
    match = _VALUE_RE.match(value)
    if match is None:
        raise ValueError(f"invalid holiday value {value!r}")
    days, year, month, day = (int(part) for part in match.groups())
    return Holiday(name, datetime(year, month, day), timedelta(days=days))


def format_holiday(duration_days: int, year: int, month: int, day: int) -> str:
    """The registry value stored for a holiday."""
    return f"{duration_days}_{year}_{month}_{day}"


def weekend_message(now: datetime) -> str:
    weekday = now.isoweekday() % 7  # Sunday is 0
    if weekday in (0, 6):
        return "好好享受周末吧！"
    return f"距离周末还有:{5 - weekday}天！"


def daily_message(holidays: Iterable[Holiday], now: datetime) -> str:
    """The full morning reminder text."""
    lines = "\n".join(h.describe(now) for h in holidays)
    return (
        now.strftime("%Y-%m-%d")
        + GREETING
        + weekend_message(now)
        + "\n"
        + lines
        + "\n"
        + CLOSING
    )