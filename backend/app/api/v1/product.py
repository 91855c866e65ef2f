# 商品相关接口 -> 前端商品页 / SEO 增强调用

from __future__ import annotations
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.errors import ListingError, to_http_exception
from app.db.session import get_db
from app.integrations.storage import upload_image
from app.repository.product_repo import (
    fetch_products_page,
    get_product,
    product_to_dict,
    soft_delete_product,
)
from app.services.seo.product_seo import bulk_enhance_products, enhance_product_seo, product_seo_score
from app.services.seo.prompts import SEOOptions


logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


# ---------- Pydantic 模型 ----------
class ProductOut(BaseModel):
    id: str
    connector_id: Optional[str] = None
    external_id: str
    title: str
    description: Optional[str] = None
    price: Optional[float] = None
    compare_at_price: Optional[float] = None
    currency: str = "USD"
    sku: Optional[str] = None
    gtin: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    variants: List[Dict[str, Any]] = Field(default_factory=list)
    custom_labels: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    seo_score: Optional[int] = None


class ProductsPage(BaseModel):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int


class SEOOptionsIn(BaseModel):
    optimization_type: Literal["title", "description", "category", "tags", "seo", "all"] = "all"
    ai_model: Optional[str] = None
    language: Literal["en", "es", "fr", "de"] = "en"
    audience: Literal["general", "professionals", "students", "families"] = "general"
    optimization_level: Literal["conservative", "balanced", "aggressive"] = "balanced"
    custom_instructions: str = ""

    def to_options(self) -> SEOOptions:
        return SEOOptions(**self.model_dump())


class BulkEnhanceIn(BaseModel):
    product_ids: List[str] = Field(..., min_length=1, max_length=200)
    options: SEOOptionsIn = Field(default_factory=SEOOptionsIn)


# ---------- 工具 ----------
def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, Decimal):
        return float(value)
    return value


def _build_product_out(row: Any, *, with_score: bool = False) -> ProductOut:
    data = product_to_dict(row)
    data["price"] = _as_float(data.get("price"))
    data["compare_at_price"] = _as_float(data.get("compare_at_price"))
    if with_score:
        data["seo_score"] = product_seo_score(data)
    return ProductOut(**data)


# ---------- 查询 ----------
@router.get("/products", response_model=ProductsPage)
def list_products(
    connector_id: Optional[str] = Query(None),
    status: Optional[Literal["ACTIVE", "INACTIVE", "active", "inactive"]] = Query(None),
    q: Optional[str] = Query(None, description="标题 / SKU / 品牌模糊匹配"),
    page: int = Query(1, ge=1, description="页码，从1开始"),
    page_size: int = Query(20, ge=1, le=200, description="每页条数"),
    db: Session = Depends(get_db),
):
    logger.info("products: connector_id=%s status=%s q=%s page=%s page_size=%s", connector_id, status, q, page, page_size)
    rows, total = fetch_products_page(
        db, connector_id=connector_id, status=status, q=q, page=page, page_size=page_size,
    )
    items = [_build_product_out(row) for row in rows]
    return ProductsPage(items=items, total=total, page=page, page_size=page_size)


@router.get("/products/{product_id}", response_model=ProductOut)
def get_product_detail(product_id: str, db: Session = Depends(get_db)):
    product = get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return _build_product_out(product, with_score=True)


# 商品只从 Shopify 同步进来，不支持手工创建
@router.post("/products", status_code=501)
def create_product():
    raise HTTPException(status_code=501, detail="Product creation is disabled; products are synced from the store")


@router.delete("/products/{product_id}", status_code=204)
def delete_product(product_id: str, db: Session = Depends(get_db)):
    product = get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    soft_delete_product(db, product.id)
    db.commit()
    return Response(status_code=204)


# ---------- SEO ----------
@router.post("/products/seo/bulk-enhance")
def bulk_enhance(body: BulkEnhanceIn, db: Session = Depends(get_db)):
    return bulk_enhance_products(db, body.product_ids, body.options.to_options())


@router.post("/products/{product_id}/seo/enhance")
def enhance_seo(product_id: str, body: Optional[SEOOptionsIn] = None, db: Session = Depends(get_db)):
    options = (body or SEOOptionsIn()).to_options()
    try:
        return enhance_product_seo(db, product_id, options)
    except ListingError as e:
        db.rollback()
        raise to_http_exception(e)


# ---------- 图片上传（原始 body，文件名走 query） ----------
@router.post("/products/images/upload")
async def upload_product_image(
    request: Request,
    filename: str = Query(..., min_length=1),
):
    content = await request.body()
    if not content:
        raise HTTPException(status_code=400, detail="Empty image body")
    content_type = request.headers.get("content-type") or "application/octet-stream"
    try:
        url = upload_image(content, filename, content_type)
    except ListingError as e:
        raise to_http_exception(e)
    return {"url": url, "filename": filename, "size": len(content)}
