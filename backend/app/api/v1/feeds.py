# 渠道 feed + 通用导出（只读）

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Dict, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.repository.connector_repo import list_connectors
from app.repository.product_repo import list_products_for_feed
from app.services.feeds import (
    EXPORT_MEDIA_TYPES,
    build_facebook_csv,
    build_google_feed,
    project_products,
    render_export,
)


logger = logging.getLogger(__name__)

router = APIRouter(tags=["feeds"])


def _shop_domains(db: Session) -> Dict[str, str]:
    return {c.id: c.shop_domain for c in list_connectors(db) if c.shop_domain}


def _attachment(body, media_type: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([body]),
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-store",
            # 跨域时让前端 JS 能读到文件名
            "Access-Control-Expose-Headers": "Content-Disposition",
        },
    )


@router.get("/feeds/google.xml")
def google_feed(connector_id: Optional[str] = Query(None), db: Session = Depends(get_db)):
    rows = list_products_for_feed(db, connector_id=connector_id, only_active=True)
    products = project_products(rows, _shop_domains(db))
    body = build_google_feed(products, link=settings.APP_BASE_URL, title=f"{settings.PROJECT_NAME} Feed")
    logger.info("feed.google connector_id=%s candidates=%s", connector_id, len(products))
    return Response(content=body, media_type="application/xml; charset=utf-8")


@router.get("/feeds/facebook.csv")
def facebook_feed(connector_id: Optional[str] = Query(None), db: Session = Depends(get_db)):
    rows = list_products_for_feed(db, connector_id=connector_id, only_active=True)
    products = project_products(rows, _shop_domains(db))
    logger.info("feed.facebook connector_id=%s rows=%s", connector_id, len(products))
    return _attachment(build_facebook_csv(products), "text/csv; charset=utf-8", "facebook_catalog.csv")


'''
  通用导出：csv / excel(带 BOM 的 csv) / xml / json
'''
@router.get("/exports/products")
def export_products(
    format: Literal["csv", "excel", "xml", "json"] = Query("csv"),
    connector_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    rows = list_products_for_feed(db, connector_id=connector_id)
    products = project_products(rows, _shop_domains(db))
    body = render_export(format, products)

    media_type, ext = EXPORT_MEDIA_TYPES[format]
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    suffix = "_excel" if format == "excel" else ""
    logger.info("export.products format=%s rows=%s", format, len(products))
    return _attachment(body.encode("utf-8"), media_type, f"products_{ts}{suffix}.{ext}")
