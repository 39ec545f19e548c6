"""Senso-ji fortune slips: images and interpretations."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

BED = "https://gitcode.net/u011570312/senso-ji-omikuji/-/raw/main/{}_{}.jpg"
SLIP_COUNT = 100


class KujiStore:
    """SQLite table of slip interpretations keyed by slip number."""

    def __init__(self, db_path: str | Path) -> None:
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._lock = threading.Lock()
        with self._lock:
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS kuji (id INTEGER PRIMARY KEY, text TEXT)"
            )
            self._db.commit()

    def __enter__(self) -> KujiStore:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def get(self, number: int) -> str:
        with self._lock:
            row = self._db.execute("SELECT text FROM kuji WHERE id = ?", (number,)).fetchone()
        if row is None:
            raise LookupError(f"no interpretation for slip {number}")
        return row[0]

    def count(self) -> int:
        with self._lock:
            return self._db.execute("SELECT COUNT(*) FROM kuji").fetchone()[0]

    def close(self) -> None:
        with self._lock:
            self._db.close()


def image_urls(number: int) -> tuple[str, str]:
    """Front and back images of slip ``number`` (1..100)."""
    if not 1 <= number <= SLIP_COUNT:
        raise ValueError("超出范围")
    return BED.format(number, 0), BED.format(number, 1)