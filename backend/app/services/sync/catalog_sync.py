from __future__ import annotations
import logging, time
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ListingError
from app.db.model.connector import Connector
from app.integrations.shopify.shopify_client import ShopifyClient
from app.repository.connector_repo import touch_last_sync
from app.services.sync.webhook_processors import DEFAULT_CURRENCY, process_product_create


logger = logging.getLogger(__name__)


STATUS_COMPLETED = "completed"
STATUS_COMPLETED_WITH_ERRORS = "completed_with_errors"


def _shop_currency(client: ShopifyClient) -> str:
    """店铺币种；拿不到就用 USD，不影响同步"""
    try:
        return (client.get_shop().get("currency") or DEFAULT_CURRENCY).upper()
    except ListingError as e:
        logger.warning("sync.shop_currency_failed shop=%s err=%s", client.host, e)
        return DEFAULT_CURRENCY


def _fill_missing_inventory(client: ShopifyClient, products: List[Dict[str, Any]]) -> int:
    """
    变体没带 inventory_quantity 的，走 variants -> inventory_levels 两步补齐。
    返回补齐的变体数。
    """
    missing: List[str] = []
    for p in products:
        for v in p.get("variants") or []:
            if isinstance(v, dict) and v.get("inventory_quantity") is None and v.get("id") is not None:
                missing.append(str(v["id"]))
    if not missing:
        return 0

    try:
        quantities = client.fetch_inventory(missing)
    except ListingError as e:
        logger.warning("sync.inventory_fetch_failed shop=%s variants=%s err=%s", client.host, len(missing), e)
        return 0

    filled = 0
    for p in products:
        for v in p.get("variants") or []:
            if not isinstance(v, dict):
                continue
            qty = quantities.get(str(v.get("id")))
            if v.get("inventory_quantity") is None and qty is not None:
                v["inventory_quantity"] = qty
                filled += 1
    return filled


def sync_connector(db: Session, connector: Connector, client: Optional[ShopifyClient] = None) -> Dict[str, Any]:
    """
    全量拉取一个连接器的商品并逐个 upsert。
    单个商品失败只记进 errors，不打断整批；结束后刷新 connector.last_sync。
    """
    t0 = time.perf_counter()
    client = client or ShopifyClient(connector.shop_domain, connector.access_token)

    currency = _shop_currency(client)
    products = client.list_products()
    filled = _fill_missing_inventory(client, products)

    processed = 0
    written = 0
    errors: List[Dict[str, Any]] = []

    for payload in products:
        processed += 1
        external_id = str(payload.get("id") or "")
        try:
            process_product_create(db, payload, connector.shop_domain, connector=connector, currency=currency)
            written += 1
        except (ListingError, SQLAlchemyError, ValueError, TypeError) as e:
            db.rollback()
            logger.warning("sync.product_failed connector_id=%s external_id=%s err=%s", connector.id, external_id, e)
            errors.append({"external_id": external_id, "error": str(e)})

    touch_last_sync(db, connector.id)
    db.commit()

    status = STATUS_COMPLETED if not errors else STATUS_COMPLETED_WITH_ERRORS
    elapsed_ms = int((time.perf_counter() - t0) * 1000)
    logger.info(
        "sync.done connector_id=%s processed=%s written=%s errors=%s inventory_filled=%s elapsed_ms=%s",
        connector.id, processed, written, len(errors), filled, elapsed_ms,
    )
    return {
        "connector_id": connector.id,
        "status": status,
        "message": f"completed with {len(errors)} errors" if errors else "completed",
        "processed": processed,
        "created_or_updated": written,
        "inventory_filled": filled,
        "currency": currency,
        "errors": errors,
    }
