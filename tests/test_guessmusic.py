import json
import subprocess
from unittest import mock
from urllib.parse import quote_plus

import pytest
import responses

from zeroplugins.guessmusic import (
    Config,
    GuessGame,
    Song,
    api_music,
    cut_music,
    fetch_anime,
    fetch_netease,
    fetch_paugram,
    local_music,
    mode_folder,
    music_lottery,
)


class FixedRng:
    def __init__(self, value):
        self.value = value

    def randrange(self, n):
        return self.value

    def choice(self, seq):
        return seq[0]


# Config ---------------------------------------------------------------------


def test_config_load_creates_file_with_defaults(tmp_path):
    path = tmp_path / "config.json"
    cfg = Config.load(path)
    assert path.exists()
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["local"] is True and data["api"] is True
    assert data["musicPath"] == cfg.music_path
    assert cfg.music_path.endswith("/")


def test_config_round_trip(tmp_path):
    path = tmp_path / "config.json"
    cfg = Config(music_path="/srv/music/", local=False, api=True)
    cfg.save(path)
    assert Config.load(path) == cfg


def test_config_apply_path_normalises(tmp_path):
    cfg = Config()
    cfg.apply("缓存歌库路径", "D:\\songs\\lib")
    assert cfg.music_path == "D:/songs/lib/"
    cfg.apply("缓存歌库路径", "/already/")
    assert cfg.music_path == "/already/"


def test_config_apply_bools():
    cfg = Config()
    cfg.apply("本地", "false")
    cfg.apply("Api", "0")
    assert (cfg.local, cfg.api) == (False, False)
    cfg.apply("Api", "T")
    assert cfg.api is True


@pytest.mark.parametrize(
    "option,value", [("本地", "yes"), ("Api", ""), ("缓存歌库路径", ""), ("其他", "1")]
)
def test_config_apply_rejects(option, value):
    with pytest.raises(ValueError):
        Config().apply(option, value)


# Song and library -------------------------------------------------------------


def test_song_parse():
    assert Song.parse("歌 - 人") == Song("歌", "人", "")
    assert Song.parse("歌 - 人 - 番") == Song("歌", "人", "番")
    with pytest.raises(ValueError):
        Song.parse("孤独的名字")


def test_mode_folder(tmp_path):
    base = tmp_path.as_posix() + "/"
    assert mode_folder("-动漫", base) == tmp_path / "动漫"
    assert mode_folder("-动漫2", base) == tmp_path / "动漫2"
    assert mode_folder("", base) == tmp_path / "歌榜"


def test_local_music():
    assert local_music(["a - b.mp3"]) == "a - b"
    assert local_music(["x.mp3.mp3", "y.mp3"], FixedRng(0)) == "x.mp3"
    with pytest.raises(ValueError):
        local_music([])


def test_lottery_local_only(tmp_path):
    cfg = Config(music_path=tmp_path.as_posix() + "/", local=True, api=False)
    with pytest.raises(RuntimeError, match="未开启API数据"):
        music_lottery("", cfg)
    (tmp_path / "歌榜" / "s - a.mp3").write_bytes(b"")
    name, folder = music_lottery("", cfg)
    assert name == "s - a"
    assert folder == tmp_path / "歌榜"


def test_lottery_neither_source(tmp_path):
    cfg = Config(music_path=tmp_path.as_posix() + "/", local=False, api=False)
    with pytest.raises(RuntimeError, match="未开启API以及本地数据"):
        music_lottery("", cfg)


def test_lottery_api_failure(tmp_path):
    cfg = Config(music_path=tmp_path.as_posix() + "/", local=False, api=True)

    def boom(mode, folder):
        raise RuntimeError("down")

    with pytest.raises(RuntimeError, match="获取API失败"):
        music_lottery("", cfg, fetch=boom)


def test_lottery_both_falls_back_to_local(tmp_path):
    cfg = Config(music_path=tmp_path.as_posix() + "/")
    folder = tmp_path / "动漫"
    folder.mkdir()
    (folder / "t - b.mp3").write_bytes(b"")
    calls = []

    def boom(mode, where):
        calls.append((mode, where))
        raise OSError("down")

    name, _ = music_lottery("-动漫", cfg, rng=FixedRng(1), fetch=boom)
    assert name == "t - b"
    assert calls == [("-动漫", folder)]


def test_lottery_both_empty_downloads(tmp_path):
    cfg = Config(music_path=tmp_path.as_posix() + "/")
    name, _ = music_lottery("", cfg, fetch=lambda m, d: "new - song")
    assert name == "new - song"

    def boom(mode, where):
        raise RuntimeError("down")

    with pytest.raises(RuntimeError, match="本地数据为0，歌曲下载错误"):
        music_lottery("", cfg, fetch=boom)


# HTTP fetchers ------------------------------------------------------------------


def test_fetch_netease_downloads(tmp_path):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            "https://api.uomg.com/api/rand.music",
            json={"code": 1, "data": {"name": "晴天", "url": "https://cdn.example.com/a.mp3",
                                      "artistsname": "歌手"}},
        )
        rsps.add(responses.GET, "https://cdn.example.com/a.mp3", body=b"ID3data")
        name = fetch_netease(tmp_path)
    assert name == "晴天 - 歌手"
    assert (tmp_path / "晴天 - 歌手.mp3").read_bytes() == b"ID3data"


def test_api_music_default_mode_uses_netease(tmp_path):
    (tmp_path / "t - a.mp3").write_bytes(b"old")
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            "https://api.uomg.com/api/rand.music",
            json={"data": {"name": "t", "url": "https://cdn.example.com/b.mp3",
                           "artistsname": "a"}},
        )
        assert api_music("", tmp_path) == "t - a"
        assert len(rsps.calls) == 1
    assert (tmp_path / "t - a.mp3").read_bytes() == b"old"


def test_fetch_netease_missing_info(tmp_path):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://api.uomg.com/api/rand.music", json={"data": {}})
        with pytest.raises(RuntimeError, match="无法获API取歌曲信息"):
            fetch_netease(tmp_path)


def test_fetch_paugram_head_failure(tmp_path):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            "https://api.paugram.com/acgm/",
            json={"title": "T", "artist": "A", "link": "https://cdn.example.com/p.mp3"},
        )
        rsps.add(responses.HEAD, "https://cdn.example.com/p.mp3", status=404)
        with pytest.raises(RuntimeError, match="Status Code: 404"):
            fetch_paugram(tmp_path)
    assert not (tmp_path / "T - A.mp3").exists()


def test_fetch_anime_unknown_artist(tmp_path):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            "https://anime-music.jijidown.com/api/v2/music",
            json={"res": {"title": "OP", "author": "未知", "anime_info": {"title": "Show"}}},
        )
        rsps.add(
            responses.GET,
            "https://music.cyrilstudio.top/search",
            json={"code": 200, "result": {"songs": [{"id": 7, "artists": [{"name": "S - X"}]}]}},
        )
        rsps.add(responses.HEAD, "http://music.163.com/song/media/outer/url", status=200)
        rsps.add(responses.GET, "http://music.163.com/song/media/outer/url", body=b"mp3")
        name = fetch_anime(tmp_path)
        search_url = rsps.calls[1].request.url
    assert name == "OP - S-X - Show"
    assert quote_plus("Show OP") in search_url
    assert (tmp_path / f"{name}.mp3").read_bytes() == b"mp3"


def test_fetch_anime_bad_search_code(tmp_path):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            "https://anime-music.jijidown.com/api/v2/music",
            json={"res": {"title": "OP", "author": "Me", "anime_info": {"title": "Show"}}},
        )
        rsps.add(responses.GET, "https://music.cyrilstudio.top/search", json={"code": 400})
        with pytest.raises(RuntimeError, match="Status Code: 400"):
            fetch_anime(tmp_path)


# ffmpeg ---------------------------------------------------------------------------


def test_cut_music_arguments(tmp_path):
    out = tmp_path / "cache" / "1"
    with mock.patch("zeroplugins.guessmusic.subprocess.run") as run:
        clips = cut_music("s - a", tmp_path, out)
    args = run.call_args[0][0]
    assert args[0] == "ffmpeg"
    assert str(tmp_path / "s - a.mp3") in args
    assert "00:00:05" in args and "00:00:30" in args and "00:01:00" in args
    assert [c.name for c in clips] == ["0.wav", "1.wav", "2.wav"]
    assert out.is_dir()


def test_cut_music_failure(tmp_path):
    err = subprocess.CalledProcessError(1, ["ffmpeg"], stderr="no such file")
    with mock.patch("zeroplugins.guessmusic.subprocess.run", side_effect=err):
        with pytest.raises(RuntimeError, match="生成歌曲错误.*no such file"):
            cut_music("s - a", tmp_path, tmp_path / "out")


# game ------------------------------------------------------------------------------


def game(mode=""):
    return GuessGame(Song("Hello World", "Singer", "Show"), mode=mode, starter_id=1)


def test_correct_title_case_insensitive():
    reply = game().answer(2, "-hello world")
    assert reply.finished
    assert reply.text.startswith("太棒了，你猜对歌曲名了！答案是")
    assert "\n歌名:Hello World\n歌手:Singer" in reply.text
    assert "歌曲出自" not in reply.text


def test_partial_artist_match():
    reply = game().answer(2, "-Sing")
    assert reply.finished and "猜对歌手名" in reply.text


def test_anime_mode_guesses_show():
    reply = game("-动漫2").answer(3, "-Show")
    assert reply.finished
    assert reply.text.endswith("\n歌曲出自:Show")


def test_cancel_only_by_starter():
    g = game()
    assert g.answer(2, "-取消").text == "你无权限取消"
    assert not g.finished
    reply = g.answer(1, "-取消")
    assert reply.finished and reply.text.startswith("游戏已取消")


def test_hints_run_out():
    g = game()
    first, second, third = (g.answer(2, "-提示") for _ in range(3))
    assert (first.clip, second.clip) == (1, 2)
    assert third.text == "已经没有提示了哦" and third.clip is None
    assert not g.waiting


def test_unknown_artist_forbidden():
    g = GuessGame(Song("X", "未知"), starter_id=1)
    assert g.answer(2, "-未知").text == "该模式禁止回答“未知”"
    assert not g.finished


def test_wrong_answers_end_game():
    g = game()
    replies = [g.answer(2, "-nope") for _ in range(7)]
    assert [r.clip for r in replies[:2]] == [1, 2]
    assert all(r.text == "答案不对哦，加油啊~" for r in replies[2:6])
    assert replies[6].finished
    assert replies[6].text.startswith("次数到了，你没能猜出来。")
    with pytest.raises(RuntimeError):
        g.answer(2, "-Singer")


def test_wait_expired_plays_clips_then_stops():
    g = game()
    first = g.wait_expired()
    second = g.wait_expired()
    assert (first.clip, second.clip) == (1, 2)
    assert g.wait_expired() is None
    assert g.wait_expired() is None
    assert not g.waiting


def test_timeout_message():
    g = game("-动漫2")
    reply = g.timeout_message()
    assert g.finished and reply.finished
    assert reply.text.startswith("猜歌超时，游戏结束\n答案是:")
    assert reply.text.endswith("歌曲出自:Show")