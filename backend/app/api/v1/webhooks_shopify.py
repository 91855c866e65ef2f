# app/api/v1/webhooks_shopify.py

from __future__ import annotations
import hmac, hashlib, base64, json, logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ListingError, to_http_exception
from app.db.session import get_db
from app.services.sync.webhook_processors import dispatch_webhook


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/shopify", tags=["webhooks.shopify"])


'''
Shopify webhook 入口
  - 先读原始 body 做 HMAC，再解析 JSON，签名不对直接 401，不碰数据库；
  - 按 X-Shopify-Topic 分发到对应处理器；
  - 两种挂法都支持：统一入口 /webhooks/shopify，或按 topic 注册的 /webhooks/shopify/{resource}/{action}（topic 仍以 header 为准）。
'''


# =============== HMAC 校验（Shopify Webhook 签名） ===============
def _compute_hmac(secret: str, raw_body: bytes) -> bytes:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()


def _verify_hmac_or_401(provided_hmac_b64: str, raw_body: bytes) -> None:
    secret = settings.SHOPIFY_WEBHOOK_SECRET or ""
    if not secret:
        # 未配置 secret：跳过校验（仅开发环境这样配）
        logger.warning("webhook.hmac.skipped reason=no_secret_configured")
        return

    if not provided_hmac_b64:
        raise HTTPException(status_code=401, detail="Missing HMAC")

    try:
        provided = base64.b64decode(provided_hmac_b64, validate=True)
    except (ValueError, TypeError):
        logger.warning("webhook.hmac.mismatch reason=bad_base64")
        raise HTTPException(status_code=401, detail="Invalid HMAC")

    expected = _compute_hmac(secret, raw_body)
    if not hmac.compare_digest(provided, expected):
        logger.warning("webhook.hmac.mismatch")
        raise HTTPException(status_code=401, detail="Invalid HMAC")


async def _handle(
    request: Request,
    db: Session,
    hmac_header: str,
    topic_header: str,
    shop_header: str,
    path_topic: Optional[str] = None,
):
    # 1) 先做 HMAC 校验，再看 Topic，避免用任意 Topic 绕过校验
    raw = await request.body()
    _verify_hmac_or_401(hmac_header, raw)

    # 2) Topic / Shop header 必须有；以 header 为准
    topic = (topic_header or "").strip().lower()
    shop = (shop_header or "").strip()
    if not topic or not shop:
        raise HTTPException(status_code=400, detail="Missing X-Shopify-Topic or X-Shopify-Shop-Domain")
    if path_topic and path_topic.lower() != topic:
        logger.info("webhook.topic_path_mismatch header=%s path=%s", topic, path_topic)

    # 3) 解析 payload
    try:
        payload = json.loads(raw.decode("utf-8") or "{}")
    except (UnicodeDecodeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    # 4) 分发：处理器是同步的数据库读写，放线程池里跑
    try:
        result = await run_in_threadpool(dispatch_webhook, db, topic, shop, payload)
    except ListingError as e:
        db.rollback()
        logger.info("webhook.failed topic=%s shop=%s err=%s", topic, shop, e)
        raise to_http_exception(e)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("webhook.db_error topic=%s shop=%s", topic, shop)
        raise HTTPException(status_code=500, detail="Database error") from e

    return {"ok": True, "topic": topic, **result}


@router.post("")
async def shopify_webhook(
    request: Request,
    db: Session = Depends(get_db),
    x_shopify_hmac_sha256: str = Header(default=""),
    x_shopify_topic: str = Header(default=""),
    x_shopify_shop_domain: str = Header(default=""),
):
    return await _handle(request, db, x_shopify_hmac_sha256, x_shopify_topic, x_shopify_shop_domain)


@router.post("/{resource}/{action}")
async def shopify_webhook_by_topic(
    resource: str,
    action: str,
    request: Request,
    db: Session = Depends(get_db),
    x_shopify_hmac_sha256: str = Header(default=""),
    x_shopify_topic: str = Header(default=""),
    x_shopify_shop_domain: str = Header(default=""),
):
    return await _handle(
        request, db, x_shopify_hmac_sha256, x_shopify_topic, x_shopify_shop_domain,
        path_topic=f"{resource}/{action}",
    )
