import csv

import pytest

from zeroplugins.hyaku import BED, Poem, image_urls, load_poems

HEADER = ["番号", "歌人", "上の句", "下の句", "上の句ひらがな", "下の句ひらがな"]


def _write(path, rows):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(HEADER)
        writer.writerows(rows)


def _rows(n=100):
    return [[str(i), f"poet{i}", f"up{i}", f"low{i}", f"uk{i}", f"lk{i}"] for i in range(1, n + 1)]


def test_load(tmp_path):
    p = tmp_path / "hyaku.csv"
    _write(p, _rows())
    poems = load_poems(p)
    assert len(poems) == 100
    assert [int(x.number) for x in poems] == list(range(1, 101))
    assert poems[41].poet == "poet42"


def test_wrong_count(tmp_path):
    p = tmp_path / "hyaku.csv"
    _write(p, _rows(99))
    with pytest.raises(ValueError):
        load_poems(p)


def test_wrong_number(tmp_path):
    rows = _rows()
    rows[5][0] = "7"
    p = tmp_path / "hyaku.csv"
    _write(p, rows)
    with pytest.raises(ValueError):
        load_poems(p)


def test_wrong_width(tmp_path):
    rows = _rows()
    rows[3] = rows[3][:5]
    p = tmp_path / "hyaku.csv"
    _write(p, rows)
    with pytest.raises(ValueError):
        load_poems(p)


def test_str():
    poem = Poem("1", "a", "b", "c", "d", "e")
    lines = str(poem).splitlines()
    assert len(lines) == 6
    assert lines[0] == "●番号：1"
    assert lines[1] == "◉歌人：a"
    assert lines[5] == "◎下の句ひらがな：e"


def test_image_urls():
    jpg, png = image_urls(1)
    assert jpg == BED + "img/001.jpg"
    assert png == BED + "img/001.png"
    assert image_urls(100)[0].endswith("100.jpg")


@pytest.mark.parametrize("n", [0, 101])
def test_image_urls_range(n):
    with pytest.raises(ValueError):
        image_urls(n)