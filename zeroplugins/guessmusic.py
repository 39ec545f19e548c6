"""Song guessing game: song library lottery, audio clipping and answer checking."""

from __future__ import annotations

import json
import random
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable
from urllib.parse import quote_plus

import requests

UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/87.0.4280.88 Safari/537.36 Edg/87.0.664.66"
)

CUT_TIMES = ("00:00:05", "00:00:30", "00:01:00")
CLIP_SECONDS = 10
WAIT_SECONDS = 40
TICK_SECONDS = 105
TIMEOUT_SECONDS = 120
TICK_TEXT = "猜歌游戏，你还有15s作答时间"

ANIME = "-动漫"
ANIME2 = "-动漫2"

_PAUGRAM_API = "https://api.paugram.com/acgm/?list=1"
_PAUGRAM_REFERER = "https://api.paugram.com/"
_ANIME_API = "https://anime-music.jijidown.com/api/v2/music"
_ANIME_REFERER = "https://anime-music.jijidown.com/"
_SEARCH_API = "https://music.cyrilstudio.top/search?keywords={}&limit=1"
_NETEASE_OUTER = "http://music.163.com/song/media/outer/url?id={}"
_NETEASE_API = (
    "https://api.uomg.com/api/rand.music?sort=%E7%83%AD%E6%AD%8C%E6%A6%9C&format=json"
)
_NETEASE_REFERER = "https://api.uomg.com/api/rand.music"

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}
_FETCH_ERRORS = (RuntimeError, ValueError, OSError, LookupError, TypeError)

Fetcher = Callable[[str, Path], str]


def _parse_bool(value: str) -> bool:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f'strconv.ParseBool: parsing "{value}": invalid syntax')


def _default_music_path() -> str:
    return (Path.cwd() / "data" / "guessmusic" / "music").as_posix() + "/"


@dataclass
class Config:
    """Where the song library lives and which sources may be used."""

    music_path: str = field(default_factory=_default_music_path)
    local: bool = True
    api: bool = True

    @classmethod
    def load(cls, path: str | Path) -> Config:
        """Read the config file, creating it with defaults when it is missing."""
        target = Path(path)
        config = cls()
        if not target.exists():
            config.save(target)
            return config
        data = json.loads(target.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("config must be a JSON object")
        if "musicPath" in data:
            config.music_path = str(data["musicPath"])
        if "local" in data:
            config.local = bool(data["local"])
        if "api" in data:
            config.api = bool(data["api"])
        return config

    def save(self, path: str | Path) -> None:
        payload = {"musicPath": self.music_path, "local": self.local, "api": self.api}
        Path(path).write_text(json.dumps(payload, ensure_ascii=False) + "\n", encoding="utf-8")

    def apply(self, option: str, value: str) -> None:
        """Change one setting from a chat command option and its argument."""
        if option == "缓存歌库路径":
            if not value:
                raise ValueError("请输入正确的路径!")
            music_path = value.replace("\\", "/")
            if not music_path.endswith("/"):
                music_path += "/"
            self.music_path = music_path
        elif option == "本地":
            self.local = _parse_bool(value)
        elif option == "Api":
            self.api = _parse_bool(value)
        else:
            raise ValueError(f"unknown option {option!r}")


@dataclass(frozen=True)
class Song:
    """A song named "title - artist" or "title - artist - anime"."""

    title: str
    artist: str
    anime: str = ""

    @classmethod
    def parse(cls, name: str) -> Song:
        parts = name.split(" - ")
        if len(parts) < 2:
            raise ValueError(f"song name {name!r} lacks an artist")
        return cls(parts[0], parts[1], parts[2] if len(parts) > 2 else "")


def mode_folder(mode: str, music_path: str) -> Path:
    """Library sub-folder used by a game mode."""
    if mode == ANIME:
        return Path(music_path) / "动漫"
    if mode == ANIME2:
        return Path(music_path) / "动漫2"
    return Path(music_path) / "歌榜"


def local_music(names, rng: random.Random | None = None) -> str:
    """Pick a local file and return its song name without the ``.mp3``."""
    names = list(names)
    if not names:
        raise ValueError("no local music")
    chosen = (rng or random).choice(names) if len(names) > 1 else names[0]
    return chosen.replace(".mp3", "", 1)


def _http(session):
    return session if session is not None else requests


def _fetch_json(http, url: str, referer: str) -> dict:
    response = http.get(url, headers={"Referer": referer, "User-Agent": UA}, timeout=30)
    if response.status_code != 200:
        raise RuntimeError(f"status code: {response.status_code}")
    data = json.loads(response.content)
    if not isinstance(data, dict):
        raise ValueError("unexpected API response")
    return data


def _get_bytes(http, url: str) -> bytes:
    response = http.get(url, timeout=60)
    if response.status_code != 200:
        raise RuntimeError(f"status code: {response.status_code}")
    return response.content


def _check_head(http, url: str) -> None:
    try:
        response = http.head(url, allow_redirects=True, timeout=30)
    except requests.RequestException as err:
        raise RuntimeError(f"下载音乐失败, ERROR: {err}") from err
    if response.status_code != 200:
        raise RuntimeError(f"下载音乐失败, Status Code: {response.status_code}")


def _download(http, url: str, target: Path) -> None:
    if not target.exists():
        target.write_bytes(_get_bytes(http, url))


def _section(data: Any, key: str) -> dict:
    value = data.get(key) if isinstance(data, dict) else None
    return value if isinstance(value, dict) else {}


def fetch_paugram(music_dir: str | Path, session=None) -> str:
    """Download a random anime song from the paugram API; returns its name."""
    http = _http(session)
    parsed = _fetch_json(http, _PAUGRAM_API, _PAUGRAM_REFERER)
    title = parsed.get("title") or ""
    artist = parsed.get("artist") or ""
    link = parsed.get("link") or ""
    if not title or not artist:
        raise RuntimeError("无法获API取歌曲信息")
    name = f"{title} - {artist}"
    _check_head(http, link)
    _download(http, link, Path(music_dir) / f"{name}.mp3")
    return name


def fetch_anime(music_dir: str | Path, session=None) -> str:
    """Download a random anime song located through a NetEase search."""
    http = _http(session)
    res = _section(_fetch_json(http, _ANIME_API, _ANIME_REFERER), "res")
    title = res.get("title") or ""
    artist = res.get("author") or ""
    anime = _section(res, "anime_info").get("title") or ""
    if not title or not artist:
        raise RuntimeError("无法获API取歌曲信息")
    keywords = f"{anime} {title}" if artist == "未知" else f"{title} {artist}"
    try:
        found = json.loads(_get_bytes(http, _SEARCH_API.format(quote_plus(keywords))))
    except (requests.RequestException, RuntimeError) as err:
        raise RuntimeError(f"API歌曲查询失败, ERROR: {err}") from err
    if not isinstance(found, dict):
        raise ValueError("unexpected search response")
    code = found.get("code", 0)
    if code != 200:
        raise RuntimeError(f"下载音乐失败, Status Code: {code}")
    songs = _section(found, "result").get("songs") or []
    if not songs:
        raise RuntimeError("API歌曲查询结果为空")
    song = songs[0]
    if artist == "未知":
        artists = song.get("artists") or []
        if not artists:
            raise RuntimeError("API歌曲查询结果无歌手")
        artist = (artists[0].get("name") or "").replace(" - ", "-")
    name = f"{title} - {artist} - {anime}"
    url = _NETEASE_OUTER.format(int(song.get("id", 0)))
    _check_head(http, url)
    _download(http, url, Path(music_dir) / f"{name}.mp3")
    return name


def fetch_netease(music_dir: str | Path, session=None) -> str:
    """Download a random song from the NetEase hot chart."""
    http = _http(session)
    data = _section(_fetch_json(http, _NETEASE_API, _NETEASE_REFERER), "data")
    title = data.get("name") or ""
    url = data.get("url") or ""
    artist = data.get("artistsname") or ""
    if not title or not artist:
        raise RuntimeError("无法获API取歌曲信息")
    name = f"{title} - {artist}"
    _download(http, url, Path(music_dir) / f"{name}.mp3")
    return name


def api_music(mode: str, music_dir: str | Path, session=None) -> str:
    """Download a song from the API that serves ``mode``."""
    if mode == ANIME:
        return fetch_paugram(music_dir, session)
    if mode == ANIME2:
        return fetch_anime(music_dir, session)
    return fetch_netease(music_dir, session)


def music_lottery(
    mode: str,
    config: Config,
    rng: random.Random | None = None,
    fetch: Fetcher | None = None,
) -> tuple[str, Path]:
    """Choose a song for ``mode`` from the local library and/or the APIs.

    Returns the song name and the folder holding its ``.mp3``.
    """
    rng = rng or random
    fetch = fetch or (lambda m, d: api_music(m, d))
    folder = mode_folder(mode, config.music_path)
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise RuntimeError(f"[生成文件夹错误]ERROR:{err}") from err
    try:
        files = sorted(p.name for p in folder.iterdir())
    except OSError as err:
        raise RuntimeError(f"[读取本地列表错误]ERROR:{err}") from err

    if config.local and config.api:
        if not files:
            try:
                return fetch(mode, folder), folder
            except _FETCH_ERRORS as err:
                raise RuntimeError(f"[本地数据为0，歌曲下载错误]ERROR:{err}") from err
        if rng.randrange(2) == 0:
            return local_music(files, rng), folder
        try:
            return fetch(mode, folder), folder
        except _FETCH_ERRORS:
            return local_music(files, rng), folder
    if config.local:
        if not files:
            raise RuntimeError("[本地数据为0，未开启API数据]")
        return local_music(files, rng), folder
    if config.api:
        try:
            return fetch(mode, folder), folder
        except _FETCH_ERRORS as err:
            raise RuntimeError(f"[获取API失败，未开启本地数据] ERROR:{err}") from err
    raise RuntimeError("[未开启API以及本地数据]")


def cut_music(music_name: str, music_dir: str | Path, output_dir: str | Path) -> list[Path]:
    """Cut three ten-second WAV clips from a song with ffmpeg."""
    out = Path(output_dir)
    try:
        out.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise RuntimeError(f"[生成歌曲目录错误]ERROR:{err}") from err
    clips = [(out / f"{i}.wav").resolve() for i in range(len(CUT_TIMES))]
    args = ["ffmpeg", "-y", "-i", str(Path(music_dir) / f"{music_name}.mp3")]
    for start, clip in zip(CUT_TIMES, clips):
        args += ["-ss", start, "-t", str(CLIP_SECONDS), str(clip)]
    args.append("-hide_banner")
    try:
        subprocess.run(args, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as err:
        raise RuntimeError(f"[生成歌曲错误]ERROR:{err.stderr or ''}") from err
    except OSError as err:
        raise RuntimeError(f"[生成歌曲错误]ERROR:{err}") from err
    return clips


@dataclass
class Reply:
    """What the bot says back; ``clip`` is the index of a clip to play."""

    text: str
    clip: int | None = None
    finished: bool = False


class GuessGame:
    """State of one guessing round: clips heard, answers given, end of game."""

    def __init__(self, song: Song, mode: str = "", starter_id: int = 0) -> None:
        self.song = song
        self.anime_mode = mode == ANIME2
        self.starter_id = starter_id
        self.music_count = 0
        self.answer_count = 0
        self.waiting = True
        self.finished = False

    def _reveal(self, head: str) -> str:
        text = f"{head}\n歌名:{self.song.title}\n歌手:{self.song.artist}"
        if self.anime_mode:
            text += f"\n歌曲出自:{self.song.anime}"
        return text

    def _end(self, head: str) -> Reply:
        self.finished = True
        self.waiting = False
        return Reply(self._reveal(head), finished=True)

    @staticmethod
    def _hit(target: str, answer: str) -> bool:
        return answer in target or target.casefold() == answer.casefold()

    def answer(self, user_id: int, text: str) -> Reply:
        """Judge a "-answer" message; the first "-" is dropped before comparing."""
        if self.finished:
            raise RuntimeError("game is over")
        self.waiting = True
        guess = text.replace("-", "", 1)
        if guess == "取消":
            if user_id == self.starter_id:
                return self._end("游戏已取消，猜歌答案是")
            return Reply("你无权限取消")
        if guess == "提示":
            self.music_count += 1
            if self.music_count > 2:
                self.waiting = False
                return Reply("已经没有提示了哦")
            return Reply("再听这段音频，要仔细听哦", clip=self.music_count)
        if self._hit(self.song.title, guess):
            return self._end("太棒了，你猜对歌曲名了！答案是")
        if self.song.artist == "未知" and guess == "未知":
            return Reply("该模式禁止回答“未知”")
        if self._hit(self.song.artist, guess):
            return self._end("太棒了，你猜对歌手名了！答案是")
        if self.anime_mode and self._hit(self.song.anime, guess):
            return self._end("太棒了，你猜对番剧名了！答案是:")
        self.music_count += 1
        if self.music_count > 2 and self.answer_count < 6:
            self.waiting = False
            self.answer_count += 1
            return Reply("答案不对哦，加油啊~")
        if self.music_count > 2:
            return self._end("次数到了，你没能猜出来。\n答案是:")
        self.answer_count += 1
        return Reply("答案不对，再听这段音频，要仔细听哦", clip=self.music_count)

    def wait_expired(self) -> Reply | None:
        """Nobody answered for a while: offer the next clip, if any is left."""
        if self.finished or not self.waiting:
            return None
        self.music_count += 1
        if self.music_count > 2:
            self.waiting = False
            return None
        return Reply("好像有些难度呢，再听这段音频，要仔细听哦", clip=self.music_count)

    def timeout_message(self) -> Reply:
        """End the game because time ran out."""
        return self._end("猜歌超时，游戏结束\n答案是:")