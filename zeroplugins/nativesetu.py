"""Local picture folders indexed by class, with difference-hash ids."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from PIL import Image

log = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".gif", ".webp")
SUMMARY_TITLE = "所有本地setu分类"


@dataclass(frozen=True)
class SetuImage:
    """One indexed picture; ``path`` is relative to the picture root."""

    img_id: int
    name: str
    path: str


def is_image_name(name: str) -> bool:
    """Whether a file name carries one of the supported picture suffixes."""
    return name.lower().endswith(IMAGE_SUFFIXES)


def difference_hash(image: Image.Image) -> int:
    """64-bit difference hash of a picture, as a signed integer."""
    small = image.convert("L").resize((9, 8), Image.BILINEAR)
    width, height = small.size
    pixels = list(small.getdata())
    value = 0
    for row in range(height):
        line = pixels[row * width:(row + 1) * width]
        for left, right in zip(line, line[1:]):
            value = (value << 1) | (1 if left < right else 0)
    return value - (1 << 64) if value >= 1 << 63 else value


def _quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _subdirs(folder: Path) -> Iterator[Path]:
    for entry in sorted(folder.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            yield entry
            yield from _subdirs(entry)


class SetuIndex:
    """SQLite index holding one table per picture class (folder)."""

    def __init__(self, db_path: str | Path) -> None:
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._lock = threading.RLock()

    def __enter__(self) -> SetuIndex:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _create(self, name: str) -> None:
        self._db.execute(
            f"CREATE TABLE IF NOT EXISTS {_quote(name)}"
            " (imgid INTEGER PRIMARY KEY, name TEXT, path TEXT)"
        )

    def scan_all(self, root: str | Path) -> None:
        """Rebuild the whole index from every folder below ``root``."""
        base = Path(root)
        with self._lock:
            for name in self.classes():
                self._db.execute(f"DROP TABLE IF EXISTS {_quote(name)}")
            self._db.commit()
        for folder in _subdirs(base):
            relpath = folder.relative_to(base).as_posix()
            try:
                self._scan(base, relpath, folder.name)
            except Exception as err:
                log.error("[nsetu] %s", err)
                raise

    def scan_class(self, root: str | Path, name: str) -> None:
        """Re-read the pictures of the class held in ``root/name``."""
        self._scan(Path(root), name, name)

    def _scan(self, root: Path, relpath: str, name: str) -> None:
        entries = sorted((root / relpath).iterdir(), key=lambda p: p.name)
        with self._lock:
            self._db.execute(f"DROP TABLE IF EXISTS {_quote(name)}")
            self._create(name)
            self._db.commit()
        for entry in entries:
            if entry.is_dir() or not is_image_name(entry.name):
                continue
            picture_path = f"{relpath}/{entry.name}"
            log.debug("[nsetu] read %s", picture_path)
            with Image.open(entry) as img:
                img.load()
                img_id = difference_hash(img)
            log.debug("[nsetu] insert %s with id %d into %s", entry.name, img_id, name)
            with self._lock:
                self._db.execute(
                    f"INSERT OR REPLACE INTO {_quote(name)} (imgid, name, path) VALUES (?, ?, ?)",
                    (img_id, entry.name, picture_path),
                )
                self._db.commit()

    def classes(self) -> list[str]:
        with self._lock:
            rows = self._db.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()
        return [row[0] for row in rows]

    def count(self, name: str) -> int:
        with self._lock:
            return self._db.execute(f"SELECT COUNT(*) FROM {_quote(name)}").fetchone()[0]

    def pick(self, name: str) -> SetuImage:
        """A random picture of class ``name``."""
        if name not in self.classes():
            raise LookupError(f"no such class {name!r}")
        with self._lock:
            row = self._db.execute(
                f"SELECT imgid, name, path FROM {_quote(name)} ORDER BY RANDOM() LIMIT 1"
            ).fetchone()
        if row is None:
            raise LookupError(f"class {name!r} is empty")
        return SetuImage(*row)

    def summary(self) -> str:
        """Numbered list of classes with their picture counts."""
        lines = [SUMMARY_TITLE]
        for index, name in enumerate(self.classes()):
            try:
                lines.append(f"{index:02d}. {name}({self.count(name)})")
            except sqlite3.Error as err:
                lines.append(f"{index:02d}. {name}(error)")
                log.error("[nsetu] %s", err)
        return "\n".join(lines)

    def close(self) -> None:
        with self._lock:
            self._db.close()