"""Keyword-based category inference for reminder titles."""

import re

from miniremind.scheduling.reminders import Category

# Checked in order; first category with a matching keyword wins.
_KEYWORDS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.WATER, ("water", "drink", "hydrate", "tea", "喝水", "补水")),
    (Category.STRETCH, ("stretch", "stand up", "walk", "move", "posture", "起立", "拉伸", "活动", "动一下")),
    (Category.EYE, ("eye", "eyes", "screen", "look away", "护眼", "眼睛")),
    (Category.BREAK, ("break", "rest", "nap", "relax", "breathe", "休息", "摸鱼", "小憩")),
)


def _matches(keyword: str, text: str) -> bool:
    # CJK has no word boundaries; latin keywords must match whole words
    if not keyword.isascii():
        return keyword in text
    return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


def classify(text: str) -> Category:
    """Infer a category from free text; GENERAL when nothing matches."""
    lowered = text.lower()
    for category, keywords in _KEYWORDS:
        if any(_matches(k, lowered) for k in keywords):
            return category
    return Category.GENERAL
