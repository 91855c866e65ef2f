from __future__ import annotations
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


UNKNOWN_PRODUCT_ID = "unknown"


"""
  库存水位表 inventory_levels/update webhook 写入
  product_id 用 TEXT：找不到对应商品时存 'unknown'
"""
class InventoryLevel(Base):

    __tablename__ = "inventory_levels"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    product_id:        Mapped[str] = mapped_column(Text, nullable=False, default=UNKNOWN_PRODUCT_ID, index=True)
    connector_id:      Mapped[str] = mapped_column(String(255), ForeignKey("connectors.id"), nullable=False)
    inventory_item_id: Mapped[str] = mapped_column(String(255), nullable=False)
    location_id:       Mapped[str] = mapped_column(String(255), nullable=False)

    available_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    committed_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    incoming_quantity:  Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    on_hand_quantity:   Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at:   Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("connector_id", "inventory_item_id", "location_id"),
    )
