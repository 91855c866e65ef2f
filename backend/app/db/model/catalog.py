# 渠道 / feed 变体 / 问题单 / 组织 这几张附属表

from __future__ import annotations
import uuid
from typing import Optional, Dict, Any
from datetime import datetime

from sqlalchemy import DateTime, String, Text, ForeignKey, Index, func, text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


class Organization(Base):

    __tablename__ = "organizations"

    id:       Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name:     Mapped[str] = mapped_column(String(255), nullable=False)
    domain:   Mapped[Optional[str]] = mapped_column(String(255))
    settings: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


CHANNEL_ACTIVE = "ACTIVE"
CHANNEL_INACTIVE = "INACTIVE"

ISSUE_OPEN = "OPEN"
ISSUE_RESOLVED = "RESOLVED"


"""
  输出渠道（Google Merchant Center / Meta Catalog ...）的连接配置
"""
class Channel(Base):

    __tablename__ = "channels"

    id:          Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name:        Mapped[str] = mapped_column(String(255), nullable=False)
    type:        Mapped[str] = mapped_column(String(50), nullable=False)
    config:      Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB)
    credentials: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB)
    status:      Mapped[str] = mapped_column(String(50), nullable=False, server_default=text("'ACTIVE'"), default="ACTIVE")
    last_sync:   Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class FeedVariant(Base):

    __tablename__ = "feed_variants"

    id:             Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id:     Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("products.id"), index=True)
    name:           Mapped[str] = mapped_column(String(255), nullable=False)
    config:         Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB)
    transformation: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB)
    status:         Mapped[str] = mapped_column(String(50), nullable=False, server_default=text("'ACTIVE'"), default="ACTIVE")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


"""
  商品 / 连接器 的问题单（校验失败、同步异常等）
"""
class Issue(Base):

    __tablename__ = "issues"

    id:           Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id:   Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("products.id"), index=True)
    connector_id: Mapped[Optional[str]] = mapped_column(String(255), ForeignKey("connectors.id"))
    channel:      Mapped[Optional[str]] = mapped_column(String(50))     # 渠道类型，如 GOOGLE_MERCHANT_CENTER
    type:         Mapped[str] = mapped_column(String(100), nullable=False)
    severity:     Mapped[str] = mapped_column(String(20), nullable=False, server_default=text("'WARNING'"), default="WARNING")
    message:      Mapped[str] = mapped_column(Text, nullable=False)
    details:      Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB)
    status:       Mapped[str] = mapped_column(String(50), nullable=False, server_default=text("'OPEN'"), default="OPEN")

    created_at:  Mapped[datetime]           = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_issues_status_channel", "status", "channel"),
    )
