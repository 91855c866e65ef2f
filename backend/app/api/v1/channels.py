# 输出渠道：增删改查 / 连接 / 凭据检查 / 同步

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.errors import ListingError, to_http_exception
from app.db.session import get_db
from app.repository.channel_repo import (
    connect_channel,
    create_channel,
    delete_channel,
    get_channel,
    list_channels,
    update_channel,
)
from app.services.channels import AVAILABLE_CHANNELS, check_credentials, sync_channel


logger = logging.getLogger(__name__)

router = APIRouter(tags=["channels"])

ChannelType = Literal["GOOGLE_MERCHANT_CENTER", "BING_SHOPPING", "META_CATALOG", "PINTEREST_CATALOG", "TIKTOK_SHOPPING"]


# ---------- Pydantic 模型 ----------
class ChannelOut(BaseModel):
    id: str
    name: str
    type: str
    status: str
    config: Dict[str, Any] = Field(default_factory=dict)
    # 凭据不回显，只给出配置了哪些 key
    credential_keys: List[str] = Field(default_factory=list)
    last_sync: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ChannelIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: ChannelType
    config: Dict[str, Any] = Field(default_factory=dict)
    credentials: Dict[str, Any] = Field(default_factory=dict)
    status: Literal["ACTIVE", "INACTIVE"] = "ACTIVE"


class ChannelPatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[ChannelType] = None
    config: Optional[Dict[str, Any]] = None
    credentials: Optional[Dict[str, Any]] = None
    status: Optional[Literal["ACTIVE", "INACTIVE"]] = None


class ChannelCredentials(BaseModel):
    apiKey: str = ""
    secret: str = ""
    merchantId: str = ""


class ChannelSettings(BaseModel):
    autoSync: bool = False
    syncInterval: int = Field(60, ge=1, description="分钟")
    testMode: bool = False


class ConnectIn(BaseModel):
    channel_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    type: ChannelType
    description: str = ""
    connector_id: Optional[str] = None
    credentials: ChannelCredentials = Field(default_factory=ChannelCredentials)
    settings: ChannelSettings = Field(default_factory=ChannelSettings)


def _channel_out(c: Any) -> ChannelOut:
    return ChannelOut(
        id=str(c.id),
        name=c.name,
        type=c.type,
        status=c.status,
        config=dict(c.config or {}),
        credential_keys=sorted(k for k, v in (c.credentials or {}).items() if v),
        last_sync=c.last_sync,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


def _get_or_404(db: Session, channel_id: str) -> Any:
    channel = get_channel(db, channel_id)
    if channel is None:
        raise HTTPException(status_code=404, detail="Channel not found")
    return channel


# ---------- 查询（固定路径放在 /{channel_id} 之前） ----------
@router.get("/channels/available")
def get_available_channels():
    return AVAILABLE_CHANNELS


@router.get("/channels/connected", response_model=List[ChannelOut])
def get_connected_channels(db: Session = Depends(get_db)):
    return [_channel_out(c) for c in list_channels(db, only_active=True)]


@router.get("/channels", response_model=List[ChannelOut])
def get_channels(db: Session = Depends(get_db)):
    return [_channel_out(c) for c in list_channels(db)]


@router.get("/channels/{channel_id}", response_model=ChannelOut)
def get_channel_detail(channel_id: str, db: Session = Depends(get_db)):
    return _channel_out(_get_or_404(db, channel_id))


# ---------- 写 ----------
@router.post("/channels", response_model=ChannelOut, status_code=201)
def create_channel_endpoint(body: ChannelIn, db: Session = Depends(get_db)):
    channel = create_channel(
        db, name=body.name, type=body.type, config=body.config, credentials=body.credentials, status=body.status,
    )
    db.commit()
    logger.info("channel.created id=%s type=%s", channel.id, channel.type)
    return _channel_out(channel)


@router.post("/channels/connect", response_model=ChannelOut)
def connect_channel_endpoint(body: ConnectIn, db: Session = Depends(get_db)):
    config: Dict[str, Any] = {"description": body.description, **body.settings.model_dump()}
    if body.connector_id:
        config["connector_id"] = body.connector_id
    channel = connect_channel(
        db,
        channel_id=body.channel_id,
        name=body.name,
        type=body.type,
        config=config,
        credentials=body.credentials.model_dump(),
    )
    db.commit()
    logger.info("channel.connected id=%s type=%s", channel.id, channel.type)
    return _channel_out(channel)


@router.put("/channels/{channel_id}", response_model=ChannelOut)
def update_channel_endpoint(channel_id: str, body: ChannelPatch, db: Session = Depends(get_db)):
    channel = _get_or_404(db, channel_id)
    update_channel(db, channel, body.model_dump())
    db.commit()
    return _channel_out(channel)


@router.delete("/channels/{channel_id}", status_code=204)
def delete_channel_endpoint(channel_id: str, db: Session = Depends(get_db)):
    if not delete_channel(db, channel_id):
        raise HTTPException(status_code=404, detail="Channel not found")
    db.commit()
    return Response(status_code=204)


# ---------- 动作 ----------
@router.post("/channels/{channel_id}/test")
def check_channel_endpoint(channel_id: str, db: Session = Depends(get_db)):
    channel = _get_or_404(db, channel_id)
    result = check_credentials(channel)
    if not result["ok"]:
        raise HTTPException(status_code=400, detail=f"Missing credentials: {', '.join(result['missing'])}")
    return {"channel_id": str(channel.id), "status": "ok"}


@router.post("/channels/{channel_id}/sync")
def sync_channel_endpoint(channel_id: str, db: Session = Depends(get_db)):
    channel = _get_or_404(db, channel_id)
    try:
        result = sync_channel(db, channel)
    except ListingError as e:
        db.rollback()
        logger.warning("channel.sync.failed channel_id=%s err=%s", channel_id, e)
        raise to_http_exception(e)
    db.commit()
    return result
