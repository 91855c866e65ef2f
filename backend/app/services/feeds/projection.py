"""feed / export 共用的商品投影：ORM 行或 dict 都转成 FeedProduct，序列化函数只吃这个"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from app.db.model.product import PRODUCT_ACTIVE
from app.utils.serialization import as_str


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return d if d.is_finite() else None


def format_price(value: Optional[Decimal]) -> str:
    """两位小数；没有价格返回空串"""
    if value is None:
        return ""
    return f"{value.quantize(Decimal('0.01'))}"


@dataclass(frozen=True)
class FeedProduct:
    id: str
    external_id: str
    title: str = ""
    description: str = ""
    price: Optional[Decimal] = None
    compare_at_price: Optional[Decimal] = None
    currency: str = "USD"
    sku: str = ""
    gtin: str = ""
    brand: str = ""
    category: str = ""
    images: List[str] = field(default_factory=list)
    variants: List[Dict[str, Any]] = field(default_factory=list)
    custom_labels: List[str] = field(default_factory=list)
    status: str = PRODUCT_ACTIVE
    handle: str = ""
    shop_domain: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return (self.status or "").upper() == PRODUCT_ACTIVE

    @property
    def has_price(self) -> bool:
        return self.price is not None and self.price > 0

    @property
    def first_image(self) -> str:
        return self.images[0] if self.images else ""

    @property
    def product_url(self) -> str:
        if self.shop_domain and self.handle:
            return f"https://{self.shop_domain}/products/{self.handle}"
        return ""

    @classmethod
    def from_product(cls, product: Any, *, shop_domain: str = "") -> "FeedProduct":
        if isinstance(product, dict):
            get = product.get
            meta = product.get("metadata") or {}
        else:
            get = lambda k, d=None: getattr(product, k, d)
            meta = getattr(product, "meta", None) or {}

        return cls(
            id=as_str(get("id")),
            external_id=as_str(get("external_id")),
            title=as_str(get("title")),
            description=as_str(get("description")),
            price=_as_decimal(get("price")),
            compare_at_price=_as_decimal(get("compare_at_price")),
            currency=as_str(get("currency")) or "USD",
            sku=as_str(get("sku")),
            gtin=as_str(get("gtin")),
            brand=as_str(get("brand")),
            category=as_str(get("category")),
            images=[i for i in (get("images") or []) if isinstance(i, str)],
            variants=list(get("variants") or []),
            custom_labels=list(get("custom_labels") or []),
            status=as_str(get("status")) or PRODUCT_ACTIVE,
            handle=as_str(meta.get("handle")),
            shop_domain=shop_domain,
            created_at=get("created_at"),
            updated_at=get("updated_at"),
        )


def project_products(products: List[Any], shop_domains: Optional[Dict[str, str]] = None) -> List[FeedProduct]:
    """按输入顺序投影；shop_domains: connector_id -> shop_domain"""
    shop_domains = shop_domains or {}
    out: List[FeedProduct] = []
    for p in products or []:
        connector_id = p.get("connector_id") if isinstance(p, dict) else getattr(p, "connector_id", None)
        out.append(FeedProduct.from_product(p, shop_domain=shop_domains.get(connector_id or "", "")))
    return out
