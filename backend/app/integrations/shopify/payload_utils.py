from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional


_MYSHOPIFY_SUFFIX = ".myshopify.com"
_GTIN_RE = re.compile(r"^\d{12,14}$")


def normalize_shop_domain(shop: Any) -> str:
    """
    店铺域名归一化：去掉协议、路径和结尾的 .myshopify.com
      "https://demo.myshopify.com/" -> "demo"
    """
    value = str(shop or "").strip().lower()
    value = re.sub(r"^https?://", "", value)
    value = value.split("/", 1)[0]
    if value.endswith(_MYSHOPIFY_SUFFIX):
        value = value[: -len(_MYSHOPIFY_SUFFIX)]
    return value


def shop_host(shop: Any) -> str:
    """返回完整 host：demo -> demo.myshopify.com"""
    return f"{normalize_shop_domain(shop)}{_MYSHOPIFY_SUFFIX}"


def normalize_tags(value: Any) -> List[str]:
    """
    Shopify REST 的 tags 是逗号分隔字符串；GraphQL 是 list，两种都兼容。
    """
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v).strip() for v in value if isinstance(v, str) and str(v).strip()]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return []


def normalize_shopify_price(value: Any) -> Decimal | None:
    """
    将 Shopify 变体上的 price（字符串）转换为 Decimal，失败则返回 None。
    """
    if value is None or value == "":
        return None
    try:
        price = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not price.is_finite():
        return None
    return price


def extract_image_urls(images: Any) -> List[str]:
    """images: [{id, src}, ...] -> [src, ...]，保持顺序"""
    urls: List[str] = []
    for img in images or []:
        if isinstance(img, dict):
            src = img.get("src")
        else:
            src = img
        if isinstance(src, str) and src.strip():
            urls.append(src.strip())
    return urls


def extract_gtin(variants: List[Dict[str, Any]]) -> Optional[str]:
    """从变体 barcode 中找第一个 12~14 位纯数字的值作为 GTIN"""
    for variant in variants or []:
        barcode = str(variant.get("barcode") or "").strip()
        if _GTIN_RE.match(barcode):
            return barcode
    return None


def first_variant(variants: List[Dict[str, Any]]) -> Dict[str, Any]:
    """第一个变体；没有变体返回空 dict。"""
    return (variants or [{}])[0]


def variant_id_key(variant: Dict[str, Any]) -> str:
    return str(variant.get("id") or "").strip()
