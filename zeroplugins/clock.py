"""Persistent registry of running reminder timers."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timedelta
from typing import Callable

from .schedule import next_wake_time, should_fire
from .timer import Timer

log = logging.getLogger(__name__)

Sender = Callable[[int, list], None]

_MONTHS = {n: i for i, n in enumerate(
    ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"], 1)}
_DAYS = {n: i for i, n in enumerate(["sun", "mon", "tue", "wed", "thu", "fri", "sat"])}
_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}


def _parse_value(text: str, names: dict[str, int]) -> int:
    lowered = text.lower()
    if lowered in names:
        return names[lowered]
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"invalid cron value {text!r}") from None


def _parse_field(text: str, low: int, high: int, names: dict[str, int]) -> frozenset[int]:
    values: set[int] = set()
    for part in text.split(","):
        span, _, step_text = part.partition("/")
        step = int(step_text) if step_text else 1
        if step <= 0:
            raise ValueError(f"invalid cron step in {part!r}")
        if span in ("*", "?"):
            start, end = low, high
        elif "-" in span:
            a, b = span.split("-", 1)
            start, end = _parse_value(a, names), _parse_value(b, names)
        else:
            start = _parse_value(span, names)
            end = high if step_text else start
        if start < low or end > high or start > end:
            raise ValueError(f"cron value out of range in {part!r}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


class CronSchedule:
    """A standard five-field cron expression."""

    def __init__(self, expression: str) -> None:
        expr = expression.strip()
        expr = _DESCRIPTORS.get(expr.lower(), expr)
        fields = expr.split()
        if len(fields) != 5:
            raise ValueError(f"expected exactly 5 fields, found {len(fields)}: {expression}")
        self.minutes = _parse_field(fields[0], 0, 59, {})
        self.hours = _parse_field(fields[1], 0, 23, {})
        self.days = _parse_field(fields[2], 1, 31, {})
        self.months = _parse_field(fields[3], 1, 12, _MONTHS)
        self.weekdays = frozenset(d % 7 for d in _parse_field(fields[4], 0, 7, _DAYS))
        self._day_star = fields[2][0] in "*?"
        self._week_star = fields[4][0] in "*?"

    def _day_matches(self, moment: datetime) -> bool:
        dom = moment.day in self.days
        dow = moment.isoweekday() % 7 in self.weekdays
        if self._day_star or self._week_star:
            return dom and dow
        return dom or dow

    def matches(self, moment: datetime) -> bool:
        return (
            moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.month in self.months
            and self._day_matches(moment)
        )

    def next_after(self, moment: datetime) -> datetime:
        """The first matching minute strictly after ``moment``."""
        t = moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit = moment.year + 5
        while t.year <= limit:
            if t.month not in self.months:
                year, month = (t.year + 1, 1) if t.month == 12 else (t.year, t.month + 1)
                t = t.replace(year=year, month=month, day=1, hour=0, minute=0)
            elif not self._day_matches(t):
                t = t.replace(hour=0, minute=0) + timedelta(days=1)
            elif t.hour not in self.hours:
                t = t.replace(minute=0) + timedelta(hours=1)
            elif t.minute not in self.minutes:
                t += timedelta(minutes=1)
            else:
                return t
        raise ValueError("cron expression never fires")


def alert_message(timer: Timer) -> list[dict]:
    """Message segments sent when a timer fires: @all, the alert and an image."""
    segments = [
        {"type": "at", "data": {"qq": "all"}},
        {"type": "text", "data": {"text": timer.alert}},
    ]
    if timer.url:
        segments.append({"type": "image", "data": {"file": timer.url, "cache": "0"}})
    return segments


class Clock:
    """Timers kept in SQLite and run on background threads."""

    def __init__(self, db_path: str, send: Sender | None = None) -> None:
        self._send = send or (lambda group_id, message: None)
        self._db = sqlite3.connect(db_path, check_same_thread=False)
        self._lock = threading.RLock()
        self._timers: dict[int, Timer] = {}
        self._stops: dict[int, threading.Event] = {}
        with self._lock:
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS timer (id INTEGER PRIMARY KEY, emdwhm INTEGER,"
                " sid INTEGER, gid INTEGER, alert TEXT, cron TEXT, url TEXT)"
            )
            self._db.commit()
            rows = self._db.execute(
                "SELECT id, emdwhm, sid, gid, alert, cron, url FROM timer"
            ).fetchall()
        for row in rows:
            self.register_timer(Timer(*row), False)

    def _fire(self, timer: Timer) -> None:
        self._send(timer.group_id, alert_message(timer))

    def _run_cron(self, timer: Timer, schedule: CronSchedule, stop: threading.Event) -> None:
        while not stop.is_set():
            now = datetime.now()
            wake = schedule.next_after(now)
            if stop.wait((wake - now).total_seconds()):
                return
            self._fire(timer)

    def _run_dated(self, timer: Timer, key: int, stop: threading.Event) -> None:
        while timer.en() and not stop.is_set():
            now = datetime.now()
            wake = next_wake_time(timer, now)
            log.info("[群管]计时器%08x将睡眠%ds", key, int((wake - now).total_seconds()))
            if stop.wait(max((wake - now).total_seconds(), 0)):
                return
            if should_fire(timer, datetime.now()):
                self._fire(timer)

    def _stop(self, key: int) -> None:
        stop = self._stops.pop(key, None)
        if stop is not None:
            stop.set()

    def register_timer(self, timer: Timer, save: bool) -> bool:
        """Start a timer; ``save`` assigns its id and stores it. Returns success."""
        if save:
            timer.id = timer.timer_id()
        key = timer.id
        with self._lock:
            existing = self._timers.get(key)
            if existing is not None and existing is not timer:
                existing._set_en(False)
                self._stop(key)
        log.info("[群管]注册计时器 %s", key)
        stop = threading.Event()
        if timer.cron:
            try:
                schedule = CronSchedule(timer.cron)
            except ValueError as err:
                timer.alert = str(err)
                return False
            target = threading.Thread(target=self._run_cron, args=(timer, schedule, stop), daemon=True)
        else:
            target = threading.Thread(target=self._run_dated, args=(timer, key, stop), daemon=True)
        try:
            if save:
                self.add_timer_into_db(timer)
            self.add_timer_into_map(timer)
        except sqlite3.Error as err:
            log.error("[群管]%s", err)
            return False
        with self._lock:
            self._stops[key] = stop
        target.start()
        return True

    def cancel_timer(self, key: int) -> bool:
        with self._lock:
            timer = self._timers.pop(key, None)
            if timer is None:
                return False
            if not timer.cron:
                timer._set_en(False)
            self._stop(key)
            try:
                self._db.execute("DELETE FROM timer WHERE id = ?", (key,))
                self._db.commit()
            except sqlite3.Error:
                return False
        return True

    def list_timers(self, group_id: int) -> list[str]:
        with self._lock:
            timers = list(self._timers.values())
        result = []
        for t in timers:
            if t.group_id != group_id:
                continue
            info = t.info()
            text = info[info.index("]") + 1:] + "\n"
            text = text.replace("-1", "每")
            text = text.replace("月0日0周", "月周天")
            text = text.replace("月0日", "月")
            text = text.replace("日0周", "日")
            result.append(text)
        return result

    def get_timer(self, key: int) -> Timer | None:
        with self._lock:
            return self._timers.get(key)

    def add_timer_into_db(self, timer: Timer) -> None:
        with self._lock:
            self._db.execute(
                "INSERT OR REPLACE INTO timer (id, emdwhm, sid, gid, alert, cron, url)"
                " VALUES (?, ?, ?, ?, ?, ?, ?)",
                (timer.id, timer.packed, timer.self_id, timer.group_id,
                 timer.alert, timer.cron, timer.url),
            )
            self._db.commit()

    def add_timer_into_map(self, timer: Timer) -> None:
        with self._lock:
            self._timers[timer.id] = timer

    def close(self) -> None:
        with self._lock:
            for key in list(self._stops):
                self._stop(key)
            self._db.close()