# 交互式优化器：title / description / category / images + apply + 历史

from __future__ import annotations
import logging
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.errors import ListingError, to_http_exception
from app.db.session import get_db
from app.repository.optimization_repo import list_records
from app.services.optimizer import (
    apply_optimization,
    enhance_description,
    optimize_images,
    optimize_title,
    suggest_category,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/optimizer", tags=["optimizer"])


class TitleIn(BaseModel):
    product_id: str
    keywords: List[str] = Field(default_factory=list)
    max_length: int = Field(60, ge=10, le=255)
    model: Optional[str] = None


class DescriptionIn(BaseModel):
    product_id: str
    style: Literal["marketing", "technical", "casual"] = "marketing"
    length: Literal["short", "medium", "long"] = "medium"
    custom_instructions: str = ""
    model: Optional[str] = None


class CategoryIn(BaseModel):
    product_id: str
    model: Optional[str] = None


class ImagesIn(BaseModel):
    product_id: str


class ApplyIn(BaseModel):
    optimization_id: Optional[str] = None
    product_id: str
    optimization_type: str
    optimized_value: str


class OptimizationRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: str
    product_id: str
    optimization_type: str
    original_value: Optional[str] = None
    optimized_value: Optional[str] = None
    score: Optional[int] = None
    improvement: Optional[float] = None
    model: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None


@router.post("/title")
def optimizer_title(body: TitleIn, db: Session = Depends(get_db)):
    try:
        result = optimize_title(db, body.product_id, keywords=body.keywords, max_length=body.max_length, model=body.model)
    except ListingError as e:
        db.rollback()
        raise to_http_exception(e)
    return result.to_dict()


@router.post("/description")
def optimizer_description(body: DescriptionIn, db: Session = Depends(get_db)):
    try:
        result = enhance_description(
            db, body.product_id,
            style=body.style, length=body.length,
            custom_instructions=body.custom_instructions, model=body.model,
        )
    except ListingError as e:
        db.rollback()
        raise to_http_exception(e)
    return result.to_dict()


@router.post("/category")
def optimizer_category(body: CategoryIn, db: Session = Depends(get_db)):
    try:
        result = suggest_category(db, body.product_id, model=body.model)
    except ListingError as e:
        db.rollback()
        raise to_http_exception(e)
    return result.to_dict()


@router.post("/images")
def optimizer_images(body: ImagesIn, db: Session = Depends(get_db)):
    try:
        result = optimize_images(db, body.product_id)
    except ListingError as e:
        db.rollback()
        raise to_http_exception(e)
    return result.to_dict()


@router.post("/apply")
def optimizer_apply(body: ApplyIn, db: Session = Depends(get_db)):
    try:
        return apply_optimization(
            db,
            optimization_id=body.optimization_id,
            product_id=body.product_id,
            optimization_type=body.optimization_type,
            optimized_value=body.optimized_value,
        )
    except ListingError as e:
        db.rollback()
        raise to_http_exception(e)


@router.get("/history", response_model=List[OptimizationRecordOut])
def optimizer_history(
    product_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    rows = list_records(db, product_id=product_id, limit=limit)
    return [
        OptimizationRecordOut(
            id=str(r.id), product_id=str(r.product_id), optimization_type=r.optimization_type,
            original_value=r.original_value, optimized_value=r.optimized_value, score=r.score,
            improvement=r.improvement, model=r.model, status=r.status,
            created_at=r.created_at, applied_at=r.applied_at,
        )
        for r in rows
    ]
