"""Ogura Hyakunin Isshu: the hundred poems and their card images."""

from __future__ import annotations

import csv
from dataclasses import astuple, dataclass
from pathlib import Path

BED = "https://gitcode.net/u011570312/OguraHyakuninIsshu/-/raw/master/"
CSV_URL = BED + "小倉百人一首.csv"
POEM_COUNT = 100

_LABELS = ("番号", "歌人", "上の句", "下の句", "上の句ひらがな", "下の句ひらがな")
_MARKS = ("●", "◉", "○", "○", "◎", "◎")


@dataclass(frozen=True)
class Poem:
    number: str
    poet: str
    upper: str
    lower: str
    upper_kana: str
    lower_kana: str

    def __str__(self) -> str:
        return "".join(
            f"{mark}{label}：{value}\n"
            for mark, label, value in zip(_MARKS, _LABELS, astuple(self))
        )


def load_poems(path: str | Path) -> list[Poem]:
    """Read the poem table; it must hold exactly 100 numbered rows after a header."""
    with open(path, newline="", encoding="utf-8") as f:
        records = list(csv.reader(f))
    if not records:
        raise ValueError("invalid csvfile")
    records = records[1:]
    if len(records) != POEM_COUNT:
        raise ValueError("invalid csvfile")
    poems = []
    for expected, row in enumerate(records, 1):
        if len(row) != len(_LABELS):
            raise ValueError("invalid csvfile")
        if int(row[0]) != expected:
            raise ValueError("invalid csvfile")
        poems.append(Poem(*row))
    return poems


def image_urls(number: int) -> tuple[str, str]:
    """Picture card and text card URLs of poem ``number`` (1..100)."""
    if not 1 <= number <= POEM_COUNT:
        raise ValueError("超出范围")
    return f"{BED}img/{number:03d}.jpg", f"{BED}img/{number:03d}.png"