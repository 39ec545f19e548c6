"""Verdicts on image classification scores."""

from __future__ import annotations

from dataclasses import dataclass

HSO_IMAGE = "https://gchat.qpic.cn/gchatpic_new//--4234EDEC5F147A4C319A41149D7E0EA9/0"
THRESHOLD = 0.3


@dataclass(frozen=True)
class Scores:
    """Per-class probabilities of an image."""

    drawings: float = 0.0
    hentai: float = 0.0
    neutral: float = 0.0
    porn: float = 0.0
    sexy: float = 0.0


def _tags(scores: Scores) -> list[str]:
    tags = []
    if scores.hentai > THRESHOLD:
        tags.append(" hentai")
    if scores.porn > THRESHOLD:
        tags.append(" porn")
    if scores.sexy > THRESHOLD:
        tags.append(" hso")
    return tags


def judge(scores: Scores) -> str:
    """Verdict text for an explicitly requested rating."""
    if scores.neutral > THRESHOLD:
        return "普通哦"
    kind = "二次元" if scores.drawings > THRESHOLD or scores.neutral < THRESHOLD else "三次元"
    return kind + "".join(_tags(scores))


def auto_judge(scores: Scores) -> str | None:
    """Verdict for automatic checking, or None when nothing needs saying."""
    if scores.neutral > THRESHOLD:
        return None
    tags = _tags(scores)
    if not tags:
        return None
    kind = "二次元" if scores.drawings > THRESHOLD else "三次元"
    return kind + "".join(tags)