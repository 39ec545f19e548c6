"""Jandan "boring pictures": a local store filled by walking the site's pages."""

from __future__ import annotations

import logging
import re
import sqlite3
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import requests
from lxml import html as lxml_html

log = logging.getLogger(__name__)

API = "http://jandan.net/pic"

_POLY = 0xD800000000000000
_MASK = (1 << 64) - 1
_NUMBER_RE = re.compile(r"\d+")
_CURRENT_XPATH = "//*[@id='comments']/div[2]/div/span[@class='current-comment-page']/text()"
_IMAGES_XPATH = "//*[@class='view_img_link']"
_PREVIOUS_XPATH = (
    "//*[@id='comments']/div[@class='comments']/div[@class='cp-pagenavi']"
    "/a[@class='previous-comment-page']"
)


def _make_table() -> list[int]:
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            crc = (crc >> 1) ^ _POLY if crc & 1 else crc >> 1
        table.append(crc)
    return table


_TABLE = _make_table()


def picture_id(url: str) -> int:
    """CRC-64 (ISO polynomial) of the picture URL, as an unsigned integer."""
    crc = _MASK
    for byte in url.encode("utf-8"):
        crc = _TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ _MASK


def _to_signed(value: int) -> int:
    return value - (1 << 64) if value >= 1 << 63 else value


class PictureStore:
    """SQLite table of picture URLs keyed by their CRC-64."""

    def __init__(self, db_path: str | Path) -> None:
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._lock = threading.RLock()
        with self._lock:
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS picture (id INTEGER PRIMARY KEY, url TEXT)"
            )
            self._db.commit()

    def __enter__(self) -> PictureStore:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def random(self) -> str:
        with self._lock:
            row = self._db.execute(
                "SELECT url FROM picture ORDER BY RANDOM() LIMIT 1"
            ).fetchone()
        if row is None:
            raise LookupError("no pictures stored")
        return row[0]

    def contains(self, picture_id: int) -> bool:
        with self._lock:
            row = self._db.execute(
                "SELECT 1 FROM picture WHERE id = ?", (_to_signed(picture_id),)
            ).fetchone()
        return row is not None

    def add(self, picture_id: int, url: str) -> None:
        with self._lock:
            self._db.execute(
                "INSERT OR REPLACE INTO picture (id, url) VALUES (?, ?)",
                (_to_signed(picture_id), url),
            )
            self._db.commit()

    def count(self) -> int:
        with self._lock:
            return self._db.execute("SELECT COUNT(*) FROM picture").fetchone()[0]

    def close(self) -> None:
        with self._lock:
            self._db.close()


@dataclass
class Page:
    """What one listing page offers: its number, pictures and the older page."""

    current: int | None = None
    images: list[str] = field(default_factory=list)
    previous: str | None = None


def parse_page(html: str) -> Page:
    doc = lxml_html.fromstring(html)
    page = Page()
    current = doc.xpath(_CURRENT_XPATH)
    if current:
        match = _NUMBER_RE.search(str(current[0]))
        if match:
            page.current = int(match.group())
    for link in doc.xpath(_IMAGES_XPATH):
        href = link.get("href")
        if href:
            page.images.append("https:" + href)
    previous = doc.xpath(_PREVIOUS_XPATH)
    if previous and previous[0].get("href"):
        page.previous = "https:" + previous[0].get("href")
    return page


def _http_fetch(url: str) -> str:
    response = requests.get(url, timeout=30)
    response.raise_for_status()
    return response.text


def update(store: PictureStore, fetch: Callable[[str], str] | None = None) -> int:
    """Walk pages from the newest, adding pictures until a known one is met.

    Returns the number of pictures added.
    """
    fetch = fetch or _http_fetch
    url = API
    total = parse_page(fetch(url)).current
    if total is None:
        raise ValueError("cannot find the current page number")
    added = 0
    for i in range(total):
        log.debug("[jandan] 处理第%d/%d页...", i, total)
        page = parse_page(fetch(url))
        for image in page.images:
            key = picture_id(image)
            if store.contains(key):
                return added
            store.add(key, image)
            added += 1
        if i != total - 1:
            if page.previous is None:
                raise ValueError("cannot find the previous page link")
            url = page.previous
    return added