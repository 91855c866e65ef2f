# channel database repository

from __future__ import annotations
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from app.db.model.catalog import Channel, CHANNEL_ACTIVE
from app.utils.clock import now_utc


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


def get_channel(db: Session, channel_id: Any) -> Optional[Channel]:
    cid = _as_uuid(channel_id)
    return db.get(Channel, cid) if cid else None


def list_channels(db: Session, *, only_active: bool = False) -> List[Channel]:
    stmt = select(Channel)
    if only_active:
        stmt = stmt.where(Channel.status == CHANNEL_ACTIVE)
    return list(db.execute(stmt.order_by(Channel.created_at.asc())).scalars().all())


def create_channel(
    db: Session,
    *,
    name: str,
    type: str,
    config: Optional[Dict[str, Any]] = None,
    credentials: Optional[Dict[str, Any]] = None,
    status: str = CHANNEL_ACTIVE,
    channel_id: Optional[uuid.UUID] = None,
) -> Channel:
    channel = Channel(
        id=channel_id or uuid.uuid4(),
        name=name,
        type=type,
        config=config or {},
        credentials=credentials or {},
        status=status,
    )
    db.add(channel)
    db.flush()
    return channel


def update_channel(db: Session, channel: Channel, values: Dict[str, Any]) -> Channel:
    """只改传进来的字段；None 表示不改"""
    for key in ("name", "type", "config", "credentials", "status"):
        if values.get(key) is not None:
            setattr(channel, key, values[key])
    db.flush()
    return channel


def connect_channel(
    db: Session,
    *,
    channel_id: Optional[Any],
    name: str,
    type: str,
    config: Dict[str, Any],
    credentials: Dict[str, Any],
) -> Channel:
    """
    连接渠道：id 已存在则刷新名称 / 配置 / 凭据并重新激活，否则新建。
    不 commit。
    """
    existing = get_channel(db, channel_id) if channel_id else None
    if existing is not None:
        return update_channel(
            db, existing,
            {"name": name, "type": type, "config": config, "credentials": credentials, "status": CHANNEL_ACTIVE},
        )
    return create_channel(
        db, name=name, type=type, config=config, credentials=credentials, channel_id=_as_uuid(channel_id),
    )


def delete_channel(db: Session, channel_id: Any) -> int:
    cid = _as_uuid(channel_id)
    if cid is None:
        return 0
    res = db.execute(delete(Channel).where(Channel.id == cid))
    return int(res.rowcount or 0)


def touch_channel_sync(db: Session, channel_id: Any) -> None:
    db.execute(update(Channel).where(Channel.id == _as_uuid(channel_id)).values(last_sync=now_utc()))
