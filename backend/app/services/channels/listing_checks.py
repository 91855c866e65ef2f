"""
渠道上架前的商品检查：纯函数，只看 FeedProduct，不碰数据库。
  - 必填：标题、价格、图片；
  - 数据质量：图片 URL、GTIN 位数、描述；
  - 渠道规则：标题长度上限，Google / Bing 要求品牌。
同一商品同一渠道，问题的输出顺序固定。
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from app.services.feeds.projection import FeedProduct


GOOGLE_MERCHANT_CENTER = "GOOGLE_MERCHANT_CENTER"
BING_SHOPPING = "BING_SHOPPING"
META_CATALOG = "META_CATALOG"
PINTEREST_CATALOG = "PINTEREST_CATALOG"
TIKTOK_SHOPPING = "TIKTOK_SHOPPING"

CHANNEL_TYPES = (GOOGLE_MERCHANT_CENTER, BING_SHOPPING, META_CATALOG, PINTEREST_CATALOG, TIKTOK_SHOPPING)

SEVERITY_LOW = "LOW"
SEVERITY_MEDIUM = "MEDIUM"
SEVERITY_HIGH = "HIGH"
SEVERITY_CRITICAL = "CRITICAL"

# 各渠道标题上限（字符）
TITLE_LIMITS = {
    GOOGLE_MERCHANT_CENTER: 150,
    BING_SHOPPING: 150,
    META_CATALOG: 200,
    PINTEREST_CATALOG: 500,
    TIKTOK_SHOPPING: 255,
}
DEFAULT_TITLE_LIMIT = 150

BRAND_REQUIRED = {GOOGLE_MERCHANT_CENTER, BING_SHOPPING}

# GTIN-8 / UPC-A(12) / EAN-13 / GTIN-14
_GTIN_RE = re.compile(r"^(\d{8}|\d{12}|\d{13}|\d{14})$")


@dataclass(frozen=True)
class ListingProblem:
    code: str
    severity: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


def _is_http_url(value: str) -> bool:
    return value.startswith("https://") or value.startswith("http://")


def check_listing(channel_type: str, product: FeedProduct) -> List[ListingProblem]:
    problems: List[ListingProblem] = []

    title = product.title.strip()
    if not title:
        problems.append(ListingProblem("MISSING_TITLE", SEVERITY_CRITICAL, "Product has no title"))

    if not product.has_price:
        problems.append(ListingProblem(
            "MISSING_PRICE", SEVERITY_HIGH, "Product has no price greater than zero",
            {"price": str(product.price) if product.price is not None else None},
        ))

    if not product.images:
        problems.append(ListingProblem("MISSING_IMAGE", SEVERITY_HIGH, "Product has no images"))
    elif not _is_http_url(product.first_image):
        problems.append(ListingProblem(
            "INVALID_IMAGE_URL", SEVERITY_MEDIUM, "Main image is not an http(s) URL",
            {"image": product.first_image[:200]},
        ))

    if product.gtin and not _GTIN_RE.match(product.gtin):
        problems.append(ListingProblem(
            "INVALID_GTIN", SEVERITY_MEDIUM, "GTIN must be 8, 12, 13 or 14 digits", {"gtin": product.gtin},
        ))

    if not product.description.strip():
        problems.append(ListingProblem("MISSING_DESCRIPTION", SEVERITY_MEDIUM, "Product has no description"))

    limit = TITLE_LIMITS.get(channel_type, DEFAULT_TITLE_LIMIT)
    if len(title) > limit:
        problems.append(ListingProblem(
            "TITLE_TOO_LONG", SEVERITY_LOW, f"Title exceeds {limit} characters",
            {"length": len(title), "limit": limit},
        ))

    if channel_type in BRAND_REQUIRED and not product.brand.strip():
        problems.append(ListingProblem("MISSING_BRAND", SEVERITY_LOW, "Brand is required on this channel"))

    return problems
