"""
规则版优化（不调 LLM）：
  - title：补品牌 / 类目 / 关键词，超长截断加 "…"；
  - category：标题 + 描述里的关键词映射；
  - images：按图片数量、占位图、分辨率、类目给建议。
"""

from __future__ import annotations
from typing import Any, Dict, List


ELLIPSIS = "…"
DEFAULT_TITLE_MAX_LENGTH = 60


def truncate_title(title: str, max_length: int) -> str:
    """超过 max_length 时硬截断并以 … 结尾，结果不超过 max_length"""
    if max_length <= 0 or len(title) <= max_length:
        return title
    return title[: max_length - 1].rstrip() + ELLIPSIS


def optimize_title_with_rules(
    title: str,
    brand: str = "",
    category: str = "",
    keywords: List[str] = (),
    max_length: int = DEFAULT_TITLE_MAX_LENGTH,
) -> str:
    base = (title or "").strip() or "Product"

    if brand and brand.lower() not in base.lower():
        base = f"{brand} {base}"

    if category and category.lower() not in base.lower():
        if len(f"{base} {category}") <= max_length:
            base = f"{base} {category}"

    for keyword in keywords or []:
        keyword = (keyword or "").strip()
        if keyword and keyword.lower() not in base.lower() and len(f"{base} {keyword}") <= max_length:
            base = f"{base} {keyword}"

    return truncate_title(base, max_length)


# ---------- category ----------
# (关键词, 类目, 置信度, 原因)，按顺序匹配，可能命中多个
CATEGORY_RULES = [
    (("shirt", "blouse", "top"), "Shirts & Tops", 0.9, "Contains clothing keywords"),
    (("jacket", "coat"), "Outerwear", 0.95, "Contains outerwear keywords"),
    (("jeans", "pants"), "Bottoms", 0.9, "Contains bottom wear keywords"),
    (("necklace", "earrings", "bracelet"), "Jewelry", 0.95, "Contains jewelry keywords"),
    (("watch",), "Watches", 0.9, "Contains watch keywords"),
    (("dress",), "Dresses", 0.9, "Contains dress keywords"),
]

DEFAULT_CATEGORY = {"category": "Fashion", "confidence": 0.7, "reason": "General fashion category"}


def suggest_category_with_rules(title: str, description: str = "") -> List[Dict[str, Any]]:
    text = f"{title or ''} {description or ''}".lower()
    suggestions = [
        {"category": category, "confidence": confidence, "reason": reason}
        for words, category, confidence, reason in CATEGORY_RULES
        if any(w in text for w in words)
    ]
    return suggestions or [dict(DEFAULT_CATEGORY)]


# ---------- images ----------
_HIGH_RES_MARKERS = ("_1024x", "_2048x")
_PLACEHOLDER_MARKERS = ("placeholder", "default")
_FASHION_WORDS = ("clothing", "shirt", "dress", "jacket")
_JEWELRY_WORDS = ("jewelry", "necklace", "ring", "watch")


def _suggestion(kind: str, priority: str, message: str, recommendation: str, **extra: Any) -> Dict[str, Any]:
    return {"type": kind, "priority": priority, "message": message, "recommendation": recommendation, **extra}


def analyze_images(title: str, description: str, category: str, images: List[str]) -> List[Dict[str, Any]]:
    images = [i for i in images or [] if i]
    count = len(images)

    if count == 0:
        return [_suggestion(
            "missing_images", "high",
            "Add product images to improve conversion rates",
            "Upload at least 3-5 high-quality product images",
        )]

    suggestions: List[Dict[str, Any]] = []
    if count < 3:
        suggestions.append(_suggestion(
            "low_image_count", "medium",
            f"Only {count} images found, recommend 3-5 images",
            "Add more product images from different angles",
        ))
    if count > 8:
        suggestions.append(_suggestion(
            "too_many_images", "low",
            f"Many images ({count}) may slow page loading",
            "Consider reducing to 5-8 high-quality images",
        ))

    for idx, url in enumerate(images, start=1):
        lowered = url.lower()
        if any(m in lowered for m in _PLACEHOLDER_MARKERS):
            suggestions.append(_suggestion(
                "low_quality_image", "high",
                f"Image {idx} appears to be a placeholder",
                "Replace with high-quality product photos",
                image_url=url,
            ))
        if any(m in lowered for m in _HIGH_RES_MARKERS):
            suggestions.append(_suggestion(
                "high_resolution_image", "low",
                f"Image {idx} has excellent resolution",
                "High resolution images build trust",
                image_url=url,
            ))

    text = f"{title} {description} {category}".lower()
    if any(w in text for w in _FASHION_WORDS):
        suggestions.append(_suggestion(
            "image_variety_fashion", "medium",
            "Fashion items benefit from multiple angles",
            "Add front, back, side and detail shots. Include model photos if possible.",
        ))
    if any(w in text for w in _JEWELRY_WORDS):
        suggestions.append(_suggestion(
            "image_variety_jewelry", "medium",
            "Jewelry needs detailed close-ups",
            "Add macro shots showing details and materials",
        ))
    if count > 1:
        suggestions.append(_suggestion(
            "image_consistency", "low",
            "Ensure consistent lighting and background across images",
            "Use similar lighting, background and styling for all product photos",
        ))

    if not suggestions:
        suggestions.append(_suggestion(
            "image_optimization_general", "low",
            "Images look good",
            "A/B test image order or add lifestyle shots",
        ))
    return suggestions


def image_quality_score(images: List[str]) -> int:
    """数量档位 20/30/40 + 每张图的加分，封顶 100"""
    images = [i for i in images or [] if i]
    if not images:
        return 0

    if len(images) >= 5:
        score = 40
    elif len(images) >= 3:
        score = 30
    else:
        score = 20

    for url in images:
        if "cdn.shopify.com" in url:
            score += 10
        if "_925x" in url:
            score += 10
        if "placeholder" not in url:
            score += 10
    return min(100, score)
