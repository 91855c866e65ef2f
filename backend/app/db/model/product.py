from __future__ import annotations
from decimal import Decimal
import uuid
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import (
    DateTime, String, Text, UniqueConstraint, Index, func, text, Numeric, ForeignKey
)
from sqlalchemy.dialects.postgresql import UUID, JSONB, ARRAY
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


PRODUCT_ACTIVE = "ACTIVE"
PRODUCT_INACTIVE = "INACTIVE"


"""
  商品主表（canonical product）
  (connector_id, external_id) 唯一：webhook / sync 都按这个键 upsert
  删除只做软删除 status=INACTIVE
"""
class Product(Base):

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    connector_id: Mapped[Optional[str]] = mapped_column(String(255), ForeignKey("connectors.id"), index=True)
    external_id:  Mapped[str]           = mapped_column(String(255), nullable=False)   # Shopify 商品数字 id（字符串）

    title:       Mapped[str]           = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)                           # 允许 HTML

    # 价格信息
    price:            Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))        # 第一个变体的价格
    compare_at_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    currency:         Mapped[str]               = mapped_column(String(3), nullable=False, server_default=text("'USD'"), default="USD")

    sku:      Mapped[Optional[str]] = mapped_column(String(255))
    gtin:     Mapped[Optional[str]] = mapped_column(String(255))
    brand:    Mapped[Optional[str]] = mapped_column(String(255))
    category: Mapped[Optional[str]] = mapped_column(String(255))

    images:        Mapped[List[str]]            = mapped_column(ARRAY(Text), nullable=False, server_default=text("'{}'"), default=list)
    variants:      Mapped[List[Dict[str, Any]]] = mapped_column(JSONB, nullable=False, server_default=text("'[]'::jsonb"), default=list)
    shipping:      Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB)
    custom_labels: Mapped[List[str]]            = mapped_column(ARRAY(Text), nullable=False, server_default=text("'{}'"), default=list)
    # 列名 metadata 与 DeclarativeBase.metadata 冲突，属性名用 meta
    meta:          Mapped[Dict[str, Any]]       = mapped_column("metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb"), default=dict)

    status: Mapped[str] = mapped_column(String(50), nullable=False, server_default=text("'ACTIVE'"), default=PRODUCT_ACTIVE)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("connector_id", "external_id"),
        Index("idx_products_status", "status", "updated_at"),
    )
