"""Per-group gallery of "wife" pictures with a daily draw."""

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from datetime import date
from pathlib import Path

_DIGITS36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    sign = "-" if n < 0 else ""
    n = abs(n)
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_DIGITS36[r])
    return sign + "".join(reversed(digits))


@dataclass(frozen=True)
class Draw:
    """Result of a draw; ``shared`` when the group has only one picture."""

    owner: str
    name: str
    path: Path
    shared: bool

    @property
    def caption(self) -> str:
        if self.shared:
            return f"大家的wife都是{self.name}"
        return f"{self.owner}的wife是{self.name}"


class WifeGallery:
    """Pictures stored under ``base/<group id in base 36>/<name>``."""

    def __init__(self, base: str | Path) -> None:
        self.base = Path(base)

    def _folder(self, group_id: int) -> Path:
        return self.base / _base36(group_id)

    def names(self, group_id: int) -> list[str]:
        folder = self._folder(group_id)
        if not folder.is_dir():
            return []
        return sorted(p.name for p in folder.iterdir())

    def draw(self, group_id: int, nickname: str, today: date) -> Draw:
        """Pick the same picture for a nickname all day long."""
        names = self.names(group_id)
        if not names:
            raise LookupError("一个wife也没有哦~")
        if len(names) == 1:
            name = names[0]
            return Draw("大家", name, self._folder(group_id) / name, True)
        key = f"{nickname}{today.year}{today.month}{today.day}".encode("utf-8")
        seed = int.from_bytes(hashlib.md5(key).digest()[:8], "little", signed=True)
        name = names[random.Random(seed).randrange(len(names))]
        return Draw(nickname, name, self._folder(group_id) / name, False)

    def add(self, group_id: int, name: str, data: bytes) -> Path:
        if not name or "/" in name or "\\" in name:
            raise ValueError("没有找到wife的名字！")
        folder = self._folder(group_id)
        folder.mkdir(parents=True, exist_ok=True)
        target = folder / name
        target.write_bytes(data)
        return target

    def remove(self, group_id: int, name: str) -> None:
        if not name or "/" in name or "\\" in name:
            raise ValueError("没有找到wife的名字！")
        (self._folder(group_id) / name).unlink()


def extract_name(text: str, command: str) -> str:
    """Name following the last ``command`` in ``text``, spaces and slashes removed."""
    compact = text.replace(" ", "")
    index = compact.rfind(command)
    if index < 0:
        return ""
    name = compact[index + len(command):]
    return name.replace("/", "").replace("\\", "")


def everyone_can_add(option: str) -> bool | None:
    """Whether the option grants or revokes adding for everyone; None if neither."""
    if option in ("设置", "授予", "让"):
        return True
    if option in ("取消", "撤销", "不让"):
        return False
    return None