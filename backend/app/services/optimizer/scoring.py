from __future__ import annotations
import re


_PREMIUM_WORDS = ("premium", "quality")
_CTA_WORDS = ("buy", "order", "get", "shop")
_FEATURE_WORDS = ("feature", "benefit", "quality")


def title_score(title: str) -> int:
    """标题分（0~100）：长度档位 + 有词 + premium/quality + 特殊字符少 + Title Case"""
    title = title or ""
    score = 0

    length = len(title)
    if 50 <= length <= 60:
        score += 30
    elif 40 <= length <= 70:
        score += 20
    else:
        score += 10

    if title.split():
        score += 20

    lowered = title.lower()
    if any(w in lowered for w in _PREMIUM_WORDS):
        score += 20

    specials = title.count("!") + title.count("?") + title.count("*")
    score += 15 if specials <= 2 else 5

    if title and title == title.lower().title():
        score += 15

    return max(0, min(100, score))


def description_score(description: str) -> int:
    """描述分（0~100）：长度 / 句子数 / 列表符号 / 卖点词 / CTA"""
    description = description or ""
    score = 0

    length = len(description)
    if 150 <= length <= 300:
        score += 30
    elif 100 < length < 500:
        score += 20
    else:
        score += 10

    sentences = len(re.findall(r"[.!?]", description))
    if 3 <= sentences <= 8:
        score += 20

    if any(mark in description for mark in ("•", "-", "*")):
        score += 15

    lowered = description.lower()
    if any(w in lowered for w in _FEATURE_WORDS):
        score += 15
    if any(w in lowered for w in _CTA_WORDS):
        score += 20

    return max(0, min(100, score))


def improvement_percentage(original: str, optimized: str) -> float:
    """相对原值的长度变化百分比；原值为空记 100"""
    original = original or ""
    optimized = optimized or ""
    if not original:
        return 100.0
    return round((len(optimized) - len(original)) / len(original) * 100, 2)
