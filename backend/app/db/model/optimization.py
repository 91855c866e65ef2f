from __future__ import annotations
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, Integer, String, Text, Index, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


"""
  优化器运行记录：每次 title/description/category/images 优化写一条
  apply 之后 status=applied
"""
class OptimizationRecord(Base):

    __tablename__ = "optimization_records"

    id:         Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    optimization_type: Mapped[str] = mapped_column(String(32), nullable=False)   # title/description/category/images

    original_value:  Mapped[Optional[str]] = mapped_column(Text)
    optimized_value: Mapped[Optional[str]] = mapped_column(Text)
    score:           Mapped[Optional[int]] = mapped_column(Integer)
    improvement:     Mapped[Optional[float]] = mapped_column(Float)
    model:           Mapped[Optional[str]] = mapped_column(String(255))
    status:          Mapped[str] = mapped_column(String(32), nullable=False, server_default=text("'completed'"), default="completed")

    created_at: Mapped[datetime]           = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    applied_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_optimization_records_product", "product_id", "created_at"),
    )
