# 渠道同步：生成该渠道的 feed + 上架检查，差量维护 issues 表

from __future__ import annotations
import logging
from typing import Any, Dict, List, Set

from sqlalchemy.orm import Session

from app.core.config import settings
from app.repository.connector_repo import list_connectors
from app.repository.issue_repo import IssueKey, create_issue, open_issues_by_key, resolve_issue
from app.repository.product_repo import list_products_for_feed
from app.repository.channel_repo import touch_channel_sync
from app.services.feeds import build_facebook_csv, build_google_feed, google_feed_items, project_products
from .listing_checks import (
    BING_SHOPPING,
    GOOGLE_MERCHANT_CENTER,
    META_CATALOG,
    PINTEREST_CATALOG,
    TIKTOK_SHOPPING,
    check_listing,
)


logger = logging.getLogger(__name__)


FEED_GOOGLE_XML = "google_xml"
FEED_FACEBOOK_CSV = "facebook_csv"

# Meta 目录吃 CSV，其余渠道都吃 Google 格式的 RSS
FEED_FORMATS = {META_CATALOG: FEED_FACEBOOK_CSV}

REQUIRED_CREDENTIALS = ("apiKey", "secret")

AVAILABLE_CHANNELS: List[Dict[str, str]] = [
    {
        "id": "google-merchant",
        "name": "Google Merchant Center",
        "type": GOOGLE_MERCHANT_CENTER,
        "description": "Sync products to Google Shopping",
        "icon": "google",
        "status": "available",
    },
    {
        "id": "bing-shopping",
        "name": "Microsoft Bing Shopping",
        "type": BING_SHOPPING,
        "description": "List products on Bing Shopping",
        "icon": "microsoft",
        "status": "available",
    },
    {
        "id": "meta-catalog",
        "name": "Meta Catalog",
        "type": META_CATALOG,
        "description": "Facebook & Instagram product catalog",
        "icon": "facebook",
        "status": "available",
    },
    {
        "id": "pinterest-catalog",
        "name": "Pinterest Catalog",
        "type": PINTEREST_CATALOG,
        "description": "Shoppable pins from your catalog",
        "icon": "pinterest",
        "status": "available",
    },
    {
        "id": "tiktok-shopping",
        "name": "TikTok Shopping",
        "type": TIKTOK_SHOPPING,
        "description": "Sell products on TikTok Shop",
        "icon": "tiktok",
        "status": "available",
    },
]


def feed_format(channel_type: str) -> str:
    return FEED_FORMATS.get(channel_type, FEED_GOOGLE_XML)


def check_credentials(channel: Any) -> Dict[str, Any]:
    """只校验凭据是否齐全，不外呼"""
    creds = channel.credentials or {}
    missing = [k for k in REQUIRED_CREDENTIALS if not str(creds.get(k) or "").strip()]
    return {"ok": not missing, "missing": missing}


def sync_channel(db: Session, channel: Any) -> Dict[str, Any]:
    """
    一次渠道同步（不 commit，由调用方负责）：
      1) 拉 config.connector_id 范围内的商品（不填 = 全部店铺）；
      2) ACTIVE 商品按渠道格式生成 feed；
      3) ACTIVE 商品逐个跑上架检查：新问题开单，已消失的问题（含已下架商品的）关单；
      4) 记 last_sync。
    """
    config = channel.config or {}
    connector_id = config.get("connector_id") or None
    channel_type = channel.type

    rows = list_products_for_feed(db, connector_id=connector_id)
    shop_domains = {c.id: c.shop_domain for c in list_connectors(db) if c.shop_domain}
    products = project_products(rows, shop_domains)
    active = [p for p in products if p.is_active]

    fmt = feed_format(channel_type)
    if fmt == FEED_FACEBOOK_CSV:
        body = build_facebook_csv(active)
        items = len(active)
    else:
        body = build_google_feed(active, link=settings.APP_BASE_URL, title=f"{settings.PROJECT_NAME} Feed")
        items = len(google_feed_items(active))

    existing = open_issues_by_key(db, channel_type)
    scope: Set[str] = {p.id for p in products}
    found: Set[IssueKey] = set()
    opened = 0

    for row, product in zip(rows, products):
        if not product.is_active:
            continue
        for problem in check_listing(channel_type, product):
            key = (product.id, problem.code)
            found.add(key)
            if key in existing:
                continue
            create_issue(
                db,
                product_id=product.id,
                connector_id=getattr(row, "connector_id", None),
                channel=channel_type,
                type=problem.code,
                severity=problem.severity,
                message=problem.message,
                details=problem.details,
            )
            opened += 1

    resolved = 0
    for key, issue in existing.items():
        # 不在本次范围内的商品（别的店铺）不动
        if key[0] in scope and key not in found:
            resolve_issue(db, issue)
            resolved += 1

    touch_channel_sync(db, channel.id)

    logger.info(
        "channel.sync channel_id=%s type=%s format=%s products=%s items=%s opened=%s resolved=%s",
        channel.id, channel_type, fmt, len(products), items, opened, resolved,
    )
    return {
        "channel_id": str(channel.id),
        "type": channel_type,
        "format": fmt,
        "products": len(products),
        "items": items,
        "bytes": len(body),
        "issues_opened": opened,
        "issues_resolved": resolved,
        "status": "completed",
    }
