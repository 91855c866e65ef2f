# connector database repository

from __future__ import annotations
import logging
import uuid
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.db.model.connector import Connector, CONNECTOR_ACTIVE, CONNECTOR_INACTIVE
from app.integrations.shopify.payload_utils import shop_host
from app.utils.clock import now_utc

logger = logging.getLogger(__name__)


def get_connector(db: Session, connector_id: str) -> Optional[Connector]:
    return db.get(Connector, connector_id)


def get_connector_by_shop(db: Session, shop_domain: str) -> Optional[Connector]:
    """按店铺域名查（入参可以是 demo / demo.myshopify.com / https://...）"""
    host = shop_host(shop_domain)
    return db.execute(
        select(Connector).where(Connector.shop_domain == host).order_by(Connector.created_at.desc())
    ).scalars().first()


def list_connectors(db: Session) -> List[Connector]:
    return list(db.execute(select(Connector).order_by(Connector.created_at.desc())).scalars().all())


def upsert_connector(db: Session, *, shop_domain: str, access_token: str, name: Optional[str] = None) -> Connector:
    """
    OAuth 成功后写入连接器：同一店铺重复安装时复用原记录，刷新 token 并重新激活。
    不 commit，由调用方决定事务边界。
    """
    host = shop_host(shop_domain)
    existing = get_connector_by_shop(db, host)
    if existing is not None:
        existing.access_token = access_token
        existing.status = CONNECTOR_ACTIVE
        if name:
            existing.name = name
        db.flush()
        return existing

    connector = Connector(
        id=str(uuid.uuid4()),
        name=name or host,
        type="shopify",
        status=CONNECTOR_ACTIVE,
        shop_domain=host,
        access_token=access_token,
    )
    db.add(connector)
    db.flush()
    return connector


def deactivate_connector(db: Session, connector_id: str) -> int:
    res = db.execute(
        update(Connector).where(Connector.id == connector_id).values(status=CONNECTOR_INACTIVE)
    )
    return int(res.rowcount or 0)


def touch_last_sync(db: Session, connector_id: str) -> None:
    db.execute(update(Connector).where(Connector.id == connector_id).values(last_sync=now_utc()))
