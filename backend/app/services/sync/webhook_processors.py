"""
Shopify webhook 处理器（按 topic 分发）
  - products/create|update：变体库存合并 + 规则 SEO（seo_enhanced=False）后写库；
  - products/delete：软删除；
  - inventory_levels/update：upsert 库存行，找不到商品记 'unknown' 并返回 warning；
  - app/uninstalled：连接器置 INACTIVE，级联软删除商品。
每个处理器自己 commit，单行写入原子。
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ConstraintMissingError, InvalidArgumentError, NotFoundError
from app.db.model.product import PRODUCT_ACTIVE
from app.db.model.inventory import UNKNOWN_PRODUCT_ID
from app.integrations.shopify.payload_utils import (
    extract_gtin,
    extract_image_urls,
    first_variant,
    normalize_shopify_price,
    normalize_tags,
)
from app.repository.connector_repo import (
    deactivate_connector,
    get_connector_by_shop,
)
from app.repository.product_repo import (
    deactivate_products_by_connector,
    find_product_by_key,
    find_product_by_shop_and_external_id,
    find_product_id_by_inventory_item,
    insert_product,
    soft_delete_product,
    update_product_fields,
    upsert_product,
)
from app.repository.inventory_repo import upsert_inventory_level
from app.services.seo.enhancement import ProductSnapshot
from app.services.seo.fallback import build_fallback_enhancement
from app.services.sync.variant_merge import merge_variant_inventory
from app.utils.clock import now_utc


logger = logging.getLogger(__name__)


DEFAULT_CURRENCY = "USD"


def _external_id(payload: Dict[str, Any]) -> str:
    raw = payload.get("id")
    if raw is None or str(raw).strip() == "":
        raise InvalidArgumentError("payload is missing product id")
    return str(raw).strip()


def _result(action: str, status: str = "success", **details: Any) -> Dict[str, Any]:
    return {"action": action, "status": status, "timestamp": now_utc().isoformat(), **details}


# ---------- payload -> products 行 ----------
def build_product_row(
    connector_id: str,
    payload: Dict[str, Any],
    existing_variants: Optional[List[Dict[str, Any]]] = None,
    *,
    currency: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Shopify 商品 payload 转成 products 表的一行（列名为 key）。
    同一 payload + 同一旧变体，输出逐字节相同（不含时间戳），保证重放幂等。
    """
    incoming = [v for v in payload.get("variants") or [] if isinstance(v, dict)]
    variants = merge_variant_inventory(incoming, existing_variants or [])
    first = first_variant(variants)

    enhancement = build_fallback_enhancement(ProductSnapshot.from_shopify(payload))
    metadata = {
        "shopify_id": payload.get("id"),
        "handle": payload.get("handle") or "",
        "shopify_status": payload.get("status") or "",
        **enhancement.to_metadata(enhanced=False),
    }

    return {
        "connector_id": connector_id,
        "external_id": _external_id(payload),
        "title": payload.get("title") or "",
        "description": payload.get("body_html") or "",
        "price": normalize_shopify_price(first.get("price")),
        "compare_at_price": normalize_shopify_price(first.get("compare_at_price")),
        "currency": (currency or payload.get("currency") or DEFAULT_CURRENCY).upper()[:3],
        "sku": first.get("sku") or None,
        "gtin": extract_gtin(variants),
        "brand": payload.get("vendor") or "",
        "category": payload.get("product_type") or "",
        "images": extract_image_urls(payload.get("images")),
        "variants": variants,
        "custom_labels": normalize_tags(payload.get("tags")),
        "metadata": metadata,
        "status": PRODUCT_ACTIVE,   # 已软删除的商品再次 create/update 时重新激活
    }


def _mutable_columns(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in ("connector_id", "external_id")}


# ========== products/update ==========
def process_product_update(db: Session, payload: Dict[str, Any], shop_domain: str) -> Dict[str, Any]:
    external_id = _external_id(payload)
    existing = find_product_by_shop_and_external_id(db, shop_domain, external_id)
    if existing is None:
        raise NotFoundError(f"product {external_id} not found for shop {shop_domain}")

    row = build_product_row(existing.connector_id, payload, existing.variants or [], currency=existing.currency)
    update_product_fields(db, existing.id, _mutable_columns(row))
    db.commit()

    logger.info("webhook.product.updated shop=%s external_id=%s variants=%s", shop_domain, external_id, len(row["variants"]))
    return _result("update", product_id=str(existing.id), external_id=external_id)


# ========== products/create ==========
def _update_or_insert(db: Session, row: Dict[str, Any]) -> Any:
    """唯一约束缺失时的兜底：先查再写，结果与 upsert 一致"""
    existing = find_product_by_key(db, row["connector_id"], row["external_id"])
    if existing is not None:
        update_product_fields(db, existing.id, _mutable_columns(row))
        return existing.id
    return insert_product(db, row)


def process_product_create(
    db: Session,
    payload: Dict[str, Any],
    shop_domain: str,
    *,
    connector=None,
    currency: Optional[str] = None,
) -> Dict[str, Any]:
    external_id = _external_id(payload)
    connector = connector or get_connector_by_shop(db, shop_domain)
    if connector is None:
        raise NotFoundError(f"Connector not found for shop {shop_domain}")

    existing = find_product_by_key(db, connector.id, external_id)
    row = build_product_row(
        connector.id,
        payload,
        existing.variants if existing is not None else [],
        currency=currency,
    )

    try:
        product_id = upsert_product(db, row)
    except ConstraintMissingError:
        product_id = _update_or_insert(db, row)
    db.commit()

    logger.info("webhook.product.upserted shop=%s external_id=%s", shop_domain, external_id)
    return _result("create", product_id=str(product_id), external_id=external_id)


# ========== products/delete ==========
def process_product_delete(db: Session, payload: Dict[str, Any], shop_domain: str) -> Dict[str, Any]:
    external_id = _external_id(payload)
    existing = find_product_by_shop_and_external_id(db, shop_domain, external_id)
    if existing is None:
        raise NotFoundError(f"product {external_id} not found for shop {shop_domain}")

    soft_delete_product(db, existing.id)
    db.commit()
    logger.info("webhook.product.soft_deleted shop=%s external_id=%s", shop_domain, external_id)
    return _result("delete", product_id=str(existing.id), external_id=external_id)


# ========== inventory_levels/update ==========
_LEVEL_FIELDS = {
    "available": "available_quantity",
    "committed": "committed_quantity",
    "incoming": "incoming_quantity",
    "on_hand": "on_hand_quantity",
}


def process_inventory_update(db: Session, payload: Dict[str, Any], shop_domain: str) -> Dict[str, Any]:
    item_id = payload.get("inventory_item_id")
    location_id = payload.get("location_id")
    if item_id is None or location_id is None:
        raise InvalidArgumentError("payload is missing inventory_item_id or location_id")

    connector = get_connector_by_shop(db, shop_domain)
    if connector is None:
        raise NotFoundError(f"Connector not found for shop {shop_domain}")

    product_id = find_product_id_by_inventory_item(db, connector.id, str(item_id))
    warning = None
    if product_id is None:
        product_id = UNKNOWN_PRODUCT_ID
        warning = f"no product found for inventory item {item_id}"
        logger.warning("webhook.inventory.unknown_product shop=%s inventory_item_id=%s", shop_domain, item_id)

    row: Dict[str, Any] = {
        "connector_id": connector.id,
        "inventory_item_id": str(item_id),
        "location_id": str(location_id),
        "product_id": product_id,
        "available_quantity": int(payload.get("available") or 0),
    }
    for src, col in _LEVEL_FIELDS.items():
        if src != "available" and payload.get(src) is not None:
            row[col] = int(payload[src])

    upsert_inventory_level(db, row)
    db.commit()

    if warning:
        return _result("inventory_update", status="warning", product_id=product_id, warning=warning)
    return _result("inventory_update", product_id=product_id)


# ========== app/uninstalled ==========
def process_app_uninstalled(db: Session, payload: Dict[str, Any], shop_domain: str) -> Dict[str, Any]:
    connector = get_connector_by_shop(db, shop_domain)
    if connector is None:
        raise NotFoundError(f"Connector not found for shop {shop_domain}")

    deactivate_connector(db, connector.id)
    db.commit()

    try:
        affected = deactivate_products_by_connector(db, connector.id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("webhook.uninstall.cascade_failed shop=%s connector_id=%s err=%s", shop_domain, connector.id, e)
        return _result("uninstall", status="warning", connector_id=connector.id,
                       warning="connector deactivated but products were not soft-deleted")

    logger.info("webhook.uninstall shop=%s connector_id=%s products=%s", shop_domain, connector.id, affected)
    return _result("uninstall", connector_id=connector.id, products_deactivated=affected)


# ========== 分发 ==========
PROCESSORS: Dict[str, Callable[[Session, Dict[str, Any], str], Dict[str, Any]]] = {
    "products/create": process_product_create,
    "products/update": process_product_update,
    "products/delete": process_product_delete,
    "inventory_levels/update": process_inventory_update,
    "app/uninstalled": process_app_uninstalled,
}


def dispatch_webhook(db: Session, topic: str, shop_domain: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    key = (topic or "").strip().lower()
    processor = PROCESSORS.get(key)
    if processor is None:
        # 未订阅的 topic：快速 200，避免 Shopify 重试
        logger.info("webhook.ignored topic=%s shop=%s", topic, shop_domain)
        return _result("ignored", status="ignored", topic=topic)
    return processor(db, payload, shop_domain)
