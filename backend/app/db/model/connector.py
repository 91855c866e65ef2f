from __future__ import annotations
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text, Index, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


CONNECTOR_ACTIVE = "ACTIVE"
CONNECTOR_INACTIVE = "INACTIVE"


"""
  店铺连接器表
  OAuth 回调时创建；app/uninstalled 时置为 INACTIVE，永不物理删除
"""
class Connector(Base):

    __tablename__ = "connectors"

    id:           Mapped[str] = mapped_column(String(255), primary_key=True)
    name:         Mapped[str] = mapped_column(String(255), nullable=False)
    type:         Mapped[str] = mapped_column(String(50), nullable=False, default="shopify")    # 目前只有 shopify
    status:       Mapped[str] = mapped_column(String(50), nullable=False, default=CONNECTOR_ACTIVE)
    shop_domain:  Mapped[str] = mapped_column(String(255), nullable=False)      # xxx.myshopify.com
    access_token: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime]           = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_sync:  Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_connectors_shop_domain", "shop_domain"),
    )
