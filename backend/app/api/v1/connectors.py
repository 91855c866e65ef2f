# 连接器 + Shopify OAuth 安装 / 回调 / 手动同步

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AuthFailedError, ListingError, to_http_exception
from app.db.session import get_db
from app.integrations.shopify import ShopifyClient, generate_state, normalize_shop_domain
from app.repository.connector_repo import get_connector, list_connectors, upsert_connector
from app.services.sync.catalog_sync import sync_connector


logger = logging.getLogger(__name__)

router = APIRouter(tags=["connectors"])


class ConnectorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str
    status: str
    shop_domain: Optional[str] = None
    created_at: Optional[datetime] = None
    last_sync: Optional[datetime] = None


def _callback_url() -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}{settings.API_PREFIX}/shopify/callback"


# ---------- 连接器 ----------
@router.get("/connectors", response_model=List[ConnectorOut])
def get_connectors(db: Session = Depends(get_db)):
    return [ConnectorOut.model_validate(c) for c in list_connectors(db)]


@router.get("/connectors/{connector_id}", response_model=ConnectorOut)
def get_connector_detail(connector_id: str, db: Session = Depends(get_db)):
    connector = get_connector(db, connector_id)
    if connector is None:
        raise HTTPException(status_code=404, detail="Connector not found")
    return ConnectorOut.model_validate(connector)


@router.post("/connectors/{connector_id}/sync")
def run_connector_sync(connector_id: str, db: Session = Depends(get_db)):
    connector = get_connector(db, connector_id)
    if connector is None:
        raise HTTPException(status_code=404, detail="Connector not found")
    if not connector.access_token:
        raise HTTPException(status_code=400, detail="Connector has no access token")
    try:
        return sync_connector(db, connector)
    except ListingError as e:
        db.rollback()
        logger.warning("sync.failed connector_id=%s err=%s", connector_id, e)
        raise to_http_exception(e)


# ---------- Shopify OAuth ----------
@router.get("/shopify/install")
def shopify_install(shop: str = Query(..., min_length=1, description="店铺域名，demo 或 demo.myshopify.com")):
    if not normalize_shop_domain(shop):
        raise HTTPException(status_code=400, detail="Invalid shop")
    state = generate_state()
    try:
        auth_url = ShopifyClient(shop).build_authorize_url(_callback_url(), state)
    except ListingError as e:
        raise to_http_exception(e)
    return {"auth_url": auth_url, "state": state}


'''
OAuth 回调：
  1) code 换 token，失败 401，不落任何连接器记录；
  2) upsert 连接器（同店铺重复安装复用原记录）；
  3) 注册 5 个 webhook topic（逐个报告，不回滚）；
  4) 跑一次全量同步（单品失败记 errors）。
'''
@router.get("/shopify/callback")
def shopify_callback(
    shop: str = Query(..., min_length=1),
    code: str = Query(..., min_length=1),
    state: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    client = ShopifyClient(shop)
    try:
        token = client.authorize(code)
    except AuthFailedError as e:
        logger.warning("shopify.oauth.failed shop=%s err=%s", shop, e)
        raise HTTPException(status_code=401, detail=str(e))
    except ListingError as e:
        raise to_http_exception(e)

    name: Optional[str] = None
    try:
        name = client.get_shop().get("name")
    except ListingError as e:
        logger.warning("shopify.shop_info_failed shop=%s err=%s", shop, e)

    connector = upsert_connector(db, shop_domain=shop, access_token=token["access_token"], name=name)
    db.commit()
    logger.info("connector.installed connector_id=%s shop=%s state=%s", connector.id, connector.shop_domain, state)

    webhooks = client.register_webhooks(settings.APP_BASE_URL)

    sync: Dict[str, Any]
    try:
        sync = sync_connector(db, connector, client)
    except ListingError as e:
        db.rollback()
        logger.warning("sync.initial_failed connector_id=%s err=%s", connector.id, e)
        sync = {"status": "failed", "error": str(e)}

    return {
        "connector": ConnectorOut.model_validate(connector).model_dump(mode="json"),
        "webhooks": webhooks,
        "sync": sync,
    }
