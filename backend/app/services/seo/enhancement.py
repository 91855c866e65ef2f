"""SEO 增强记录 + 商品快照（prompt / 规则兜底 / 打分共用的输入输出结构）"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from app.utils.serialization import as_str


@dataclass
class SEOEnhancement:
    seo_title: str = ""
    seo_description: str = ""
    keywords: List[str] = field(default_factory=list)
    meta_keywords: str = ""
    alt_text: str = ""
    schema_markup: str = ""      # JSON-LD 字符串，不是对象

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_metadata(self, *, enhanced: bool, enhanced_at: str = "") -> Dict[str, Any]:
        """写进 products.metadata 的形态；seo_enhanced 只有显式优化时才为 True"""
        data = self.to_dict()
        data["seo_enhanced"] = bool(enhanced)
        data["seo_enhanced_at"] = enhanced_at or ""
        return data

    @classmethod
    def from_metadata(cls, meta: Optional[Dict[str, Any]]) -> "SEOEnhancement":
        meta = meta or {}
        keywords = meta.get("keywords")
        return cls(
            seo_title=as_str(meta.get("seo_title")),
            seo_description=as_str(meta.get("seo_description")),
            keywords=[k for k in keywords if isinstance(k, str)] if isinstance(keywords, list) else [],
            meta_keywords=as_str(meta.get("meta_keywords")),
            alt_text=as_str(meta.get("alt_text")),
            schema_markup=as_str(meta.get("schema_markup")),
        )


@dataclass(frozen=True)
class ProductSnapshot:
    """
    SEO 流水线需要的商品字段。
    category 对应 Shopify product_type，brand 对应 vendor；price / sku 取第一个变体。
    """
    title: str = ""
    description: str = ""
    category: str = ""
    brand: str = ""
    price: str = "0"
    sku: str = ""

    @classmethod
    def from_shopify(cls, payload: Dict[str, Any]) -> "ProductSnapshot":
        variants = payload.get("variants") or []
        first = variants[0] if variants and isinstance(variants[0], dict) else {}
        return cls(
            title=as_str(payload.get("title")),
            description=as_str(payload.get("body_html")),
            category=as_str(payload.get("product_type")),
            brand=as_str(payload.get("vendor")),
            price=as_str(first.get("price")) or "0",
            sku=as_str(first.get("sku")),
        )

    @classmethod
    def from_product(cls, product: Any) -> "ProductSnapshot":
        """ORM Product 或 product_to_dict() 的 dict 都可以"""
        get = product.get if isinstance(product, dict) else (lambda k, d=None: getattr(product, k, d))
        variants = get("variants") or []
        first = variants[0] if variants and isinstance(variants[0], dict) else {}
        price = get("price")
        return cls(
            title=as_str(get("title")),
            description=as_str(get("description")),
            category=as_str(get("category")),
            brand=as_str(get("brand")),
            price=as_str(first.get("price")) or (as_str(price) if price is not None else "0"),
            sku=as_str(first.get("sku")) or as_str(get("sku")),
        )
