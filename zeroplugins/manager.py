"""Group management helpers: welcome texts, mutes and gist-based join approval."""

from __future__ import annotations

import hashlib
import logging
import random
import re
import sqlite3
import threading
from typing import Callable, Mapping, Sequence

import requests

log = logging.getLogger(__name__)

HELP = (
    "====群管====\n"
    "- 禁言@QQ 1分钟\n"
    "- 解除禁言 @QQ\n"
    "- 我要自闭 1分钟\n"
    "- 开启全员禁言\n"
    "- 解除全员禁言\n"
    "- 升为管理@QQ\n"
    "- 取消管理@QQ\n"
    "- 修改名片@QQ XXX\n"
    "- 修改头衔@QQ XXX\n"
    "- 申请头衔 XXX\n"
    "- 踢出群聊@QQ\n"
    "- 退出群聊 1234@bot\n"
    "- 群聊转发 1234 XXX\n"
    "- 私聊转发 0000 XXX\n"
    "- 在MM月dd日的hh点mm分时(用http://url)提醒大家XXX\n"
    "- 在MM月[每周 | 周几]的hh点mm分时(用http://url)提醒大家XXX\n"
    "- 取消在MM月dd日的hh点mm分的提醒\n"
    "- 取消在MM月[每周 | 周几]的hh点mm分的提醒\n"
    "- 在\"cron\"时(用[url])提醒大家[xxx]\n"
    "- 取消在\"cron\"的提醒\n"
    "- 列出所有提醒\n"
    "- 翻牌\n"
    "- 设置欢迎语XXX 可选添加 [{at}] [{nickname}] [{avatar}] [{uid}] [{gid}] [{groupname}]\n"
    "- 测试欢迎语\n"
    "- 设置告别辞 参数同设置欢迎语\n"
    "- 测试告别辞\n"
    "- [开启 | 关闭]入群验证"
)

MAX_MUTE_MINUTES = 43199  # a ban may last at most one month
VERIFY_FLAG = 0x1
VERIFY_CLEAR = 0x7FFFFFFF_FFFFFFFE
GIST_FLAG = 0x10
GIST_CLEAR = 0x7FFFFFFF_FFFFFFFD

_GIST_RAW = "https://gist.githubusercontent.com/{}/{}/raw/{}"
_ANSWER_MARK = "答案："
_ENABLE = ("开启", "打开", "启用")
_DISABLE = ("关闭", "关掉", "禁用")
_INT_RE = re.compile(r"[+-]?[0-9]+")

_HOUR_UNITS = ("小时",)
_DAY_UNITS = ("天",)
_HOUR_UNITS_EN = ("hour", "hours", "h")
_DAY_UNITS_EN = ("day", "days", "d")


class MemberStore:
    """SQLite store of welcome/farewell texts and gist-verified members."""

    def __init__(self, db_path: str) -> None:
        self._db = sqlite3.connect(db_path, check_same_thread=False)
        self._lock = threading.Lock()
        with self._lock:
            for table in ("welcome", "farewell"):
                self._db.execute(
                    f"CREATE TABLE IF NOT EXISTS {table} (gid INTEGER PRIMARY KEY, msg TEXT)"
                )
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS member (qq INTEGER PRIMARY KEY, ghun TEXT)"
            )
            self._db.commit()

    def __enter__(self) -> MemberStore:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _set_text(self, table: str, group_id: int, text: str) -> None:
        with self._lock:
            self._db.execute(
                f"INSERT OR REPLACE INTO {table} (gid, msg) VALUES (?, ?)", (group_id, text)
            )
            self._db.commit()

    def _get_text(self, table: str, group_id: int) -> str | None:
        with self._lock:
            row = self._db.execute(
                f"SELECT msg FROM {table} WHERE gid = ?", (group_id,)
            ).fetchone()
        return row[0] if row else None

    def set_welcome(self, group_id: int, text: str) -> None:
        self._set_text("welcome", group_id, text)

    def get_welcome(self, group_id: int) -> str | None:
        """The group's welcome template, or None when none is set."""
        return self._get_text("welcome", group_id)

    def set_farewell(self, group_id: int, text: str) -> None:
        self._set_text("farewell", group_id, text)

    def get_farewell(self, group_id: int) -> str | None:
        """The group's farewell template, or None when none is set."""
        return self._get_text("farewell", group_id)

    def has_github_user(self, github_user: str) -> bool:
        with self._lock:
            row = self._db.execute(
                "SELECT 1 FROM member WHERE ghun = ?", (github_user,)
            ).fetchone()
        return row is not None

    def add_member(self, qq: int, github_user: str) -> None:
        with self._lock:
            self._db.execute(
                "INSERT OR REPLACE INTO member (qq, ghun) VALUES (?, ?)", (qq, github_user)
            )
            self._db.commit()

    def close(self) -> None:
        with self._lock:
            self._db.close()


def mute_minutes(amount: int, unit: str, allow_english: bool) -> int:
    """Ban length in minutes for ``amount`` of ``unit``, capped below one month.

    Unknown units count as minutes; English unit names are honoured only
    when ``allow_english`` is set.
    """
    hours = _HOUR_UNITS + (_HOUR_UNITS_EN if allow_english else ())
    days = _DAY_UNITS + (_DAY_UNITS_EN if allow_english else ())
    minutes = int(amount)
    if unit in hours:
        minutes *= 60
    elif unit in days:
        minutes *= 60 * 24
    return min(minutes, MAX_MUTE_MINUTES)


def welcome_to_cq(
    template: str, user_id: int, nickname: str, group_id: int, group_name: str
) -> str:
    """Expand {at}, {nickname}, {avatar}, {uid}, {gid} and {groupname} into CQ text."""
    uid = str(user_id)
    at = f"[CQ:at,qq={uid}]"
    avatar = f"[CQ:image,file=http://q4.qlogo.cn/g?b=qq&nk={uid}&s=640]"
    text = template.replace("{at}", at)
    text = text.replace("{nickname}", nickname)
    text = text.replace("{avatar}", avatar)
    text = text.replace("{uid}", uid)
    text = text.replace("{gid}", str(group_id))
    return text.replace("{groupname}", group_name)


def unescape_brackets(text: str) -> str:
    """Turn escaped CQ brackets back into ``[`` and ``]``."""
    return text.replace("&#91;", "[").replace("&#93;", "]")


def parse_join_answer(comment: str) -> tuple[str, str]:
    """Split the ``username/gisthash`` answer out of a join request comment."""
    mark = comment.find(_ANSWER_MARK)
    if mark < 0:
        raise ValueError("格式错误!")
    answer = comment[mark + len(_ANSWER_MARK):]
    divider = answer.find("/")
    if divider <= 0:
        raise ValueError("格式错误!")
    return answer[:divider], answer[divider + 1:]


def toggle_flag(data: int, option: str, set_mask: int, clear_mask: int) -> int | None:
    """Apply an enable/disable option to plugin data; None for an unknown option."""
    if option in _ENABLE:
        return data | set_mask
    if option in _DISABLE:
        return data & clear_mask
    return None


def gist_url(github_user: str, gist_hash: str, group_id: int) -> str:
    """Raw gist file URL whose name is the md5 of the group number."""
    name = hashlib.md5(str(group_id).encode("ascii")).hexdigest()
    return _GIST_RAW.format(github_user, gist_hash, name)


def _http_get(url: str) -> bytes:
    response = requests.get(url, timeout=30)
    response.raise_for_status()
    return response.content


def check_new_user(
    store: MemberStore,
    qq: int,
    group_id: int,
    github_user: str,
    gist_hash: str,
    now: float,
    fetch: Callable[[str], bytes | str] | None = None,
) -> tuple[bool, str]:
    """Verify a join request against a gist holding a fresh unix timestamp.

    Returns ``(approved, reason)``; approved users are recorded in ``store``.
    """
    if store.has_github_user(github_user):
        return False, "该github用户已入群"
    url = gist_url(github_user, gist_hash, group_id)
    log.debug("[gist]visit url: %s", url)
    try:
        data = (fetch or _http_get)(url)
    except OSError as err:
        return False, f"无法连接到gist: {err}"
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    log.debug("[gist]get data: %s", text)
    if not _INT_RE.fullmatch(text):
        return False, "时间戳格式错误: " + text
    if abs(int(now) - int(text)) < 600:
        store.add_member(qq, github_user)
        return True, ""
    return False, "时间戳超时"


def pick_lucky(
    members: Sequence[Mapping], rng: random.Random | None = None
) -> Mapping:
    """Pick one of the ten most recently active members at random."""
    if not members:
        raise ValueError("no members to pick from")
    ordered = sorted(members, key=lambda m: int(m.get("last_sent_time", 0)))
    recent = ordered[-10:]
    return (rng or random).choice(recent)