"""
交互式优化器：title / description / category / images
  - 先读商品，不存在 -> NotFoundError；
  - title / description / category 调 LLM，失败直接抛 UpstreamError（不降级，调用方需要知道结果没经过 AI）；
  - images 是纯规则分析；
  - 每次成功运行写一条 OptimizationRecord，apply 时回写商品单列并把记录标成 applied。
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidArgumentError, NotFoundError, UpstreamError
from app.db.model.product import Product
from app.integrations.llm import get_llm_client
from app.repository.optimization_repo import create_record, mark_applied
from app.repository.product_repo import APPLICABLE_COLUMNS, get_product, update_product_column
from app.services.optimizer.prompts import (
    DESCRIPTION_LENGTHS,
    DESCRIPTION_STYLES,
    build_category_prompt,
    build_description_prompt,
    build_title_prompt,
)
from app.services.optimizer.rules import (
    DEFAULT_TITLE_MAX_LENGTH,
    analyze_images,
    image_quality_score,
    truncate_title,
)
from app.services.optimizer.scoring import description_score, improvement_percentage, title_score
from app.services.seo.pipeline import CompletionClient, strip_code_fences


logger = logging.getLogger(__name__)


TITLE_MAX_TOKENS, TITLE_TEMPERATURE = 50, 0.7
DESCRIPTION_MAX_TOKENS, DESCRIPTION_TEMPERATURE = 300, 0.8
CATEGORY_MAX_TOKENS, CATEGORY_TEMPERATURE = 200, 0.6

RULES_MODEL = "rules"


@dataclass
class OptimizationResult:
    optimization_id: str
    product_id: str
    optimization_type: str
    original_value: str
    optimized_value: str
    score: int
    improvement: float
    model: str
    status: str = "completed"
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optimization_id": self.optimization_id,
            "product_id": self.product_id,
            "optimization_type": self.optimization_type,
            "original_value": self.original_value,
            "optimized_value": self.optimized_value,
            "score": self.score,
            "improvement": self.improvement,
            "model": self.model,
            "status": self.status,
            **self.details,
        }


# ---------- 内部工具 ----------
def _load_product(db: Session, product_id: Any) -> Product:
    product = get_product(db, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _model_name(llm: CompletionClient, override: Optional[str]) -> str:
    return override or getattr(llm, "model", "") or ""


def _call_llm(llm: CompletionClient, op: str, prompt: str, max_tokens: int, temperature: float,
              model: Optional[str]) -> str:
    try:
        text = llm.complete(prompt, max_tokens, temperature, model=model)
    except UpstreamError as e:
        logger.warning("optimizer.llm_failed op=%s err=%s", op, e)
        raise
    if not (text or "").strip():
        raise UpstreamError(f"{op}: LLM returned empty content")
    return text.strip()


def _record(db: Session, product: Product, op: str, original: str, optimized: str, score: int,
            improvement: float, model: str, details: Optional[Dict[str, Any]] = None) -> OptimizationResult:
    record = create_record(
        db,
        product_id=product.id,
        optimization_type=op,
        original_value=original,
        optimized_value=optimized,
        score=score,
        improvement=improvement,
        model=model,
    )
    db.commit()
    logger.info("optimizer.done op=%s product_id=%s score=%s improvement=%s", op, product.id, score, improvement)
    return OptimizationResult(
        optimization_id=str(record.id),
        product_id=str(product.id),
        optimization_type=op,
        original_value=original,
        optimized_value=optimized,
        score=score,
        improvement=improvement,
        model=model,
        details=details or {},
    )


# ========== title ==========
def optimize_title(
    db: Session,
    product_id: Any,
    *,
    keywords: Optional[List[str]] = None,
    max_length: Optional[int] = None,
    model: Optional[str] = None,
    llm: Optional[CompletionClient] = None,
) -> OptimizationResult:
    product = _load_product(db, product_id)
    llm = llm or get_llm_client()
    max_length = max_length or DEFAULT_TITLE_MAX_LENGTH
    original = product.title or ""

    prompt = build_title_prompt(
        title=original,
        description=product.description or "",
        brand=product.brand or "",
        category=product.category or "",
        keywords=[k.strip() for k in keywords or [] if k and k.strip()],
        max_length=max_length,
    )
    text = _call_llm(llm, "title", prompt, TITLE_MAX_TOKENS, TITLE_TEMPERATURE, model)
    optimized = truncate_title(text.strip().strip('"').strip(), max_length)

    return _record(
        db, product, "title", original, optimized,
        title_score(optimized), improvement_percentage(original, optimized), _model_name(llm, model),
        {"character_count": len(optimized), "max_length": max_length},
    )


# ========== description ==========
def enhance_description(
    db: Session,
    product_id: Any,
    *,
    style: str = "marketing",
    length: str = "medium",
    custom_instructions: str = "",
    model: Optional[str] = None,
    llm: Optional[CompletionClient] = None,
) -> OptimizationResult:
    style = (style or "marketing").lower()
    length = (length or "medium").lower()
    if style not in DESCRIPTION_STYLES:
        raise InvalidArgumentError(f"unsupported style: {style}")
    if length not in DESCRIPTION_LENGTHS:
        raise InvalidArgumentError(f"unsupported length: {length}")

    product = _load_product(db, product_id)
    llm = llm or get_llm_client()
    original = product.description or ""

    prompt = build_description_prompt(
        title=product.title or "",
        description=original,
        brand=product.brand or "",
        category=product.category or "",
        price=product.price,
        style=style,
        length=length,
        custom_instructions=custom_instructions or "",
    )
    optimized = _call_llm(llm, "description", prompt, DESCRIPTION_MAX_TOKENS, DESCRIPTION_TEMPERATURE, model)

    return _record(
        db, product, "description", original, optimized,
        description_score(optimized), improvement_percentage(original, optimized), _model_name(llm, model),
        {"style": style, "length": length},
    )


# ========== category ==========
def _confidence(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_category_suggestions(text: str) -> List[Dict[str, Any]]:
    """
    宽松解析 LLM 返回的 JSON 数组：去 ``` 包裹；非对象 / 没有 category 的元素丢弃。
    解析不出任何建议 -> ValueError。
    """
    cleaned = strip_code_fences(text)
    try:
        raw = json.loads(cleaned)
    except ValueError as e:
        logger.warning("optimizer.category.parse_error payload=%r", cleaned[:200])
        raise ValueError(f"category suggestions are not JSON: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("suggestions") or raw.get("categories") or [raw]
    if not isinstance(raw, list):
        raise ValueError("category suggestions are not a JSON array")

    out: List[Dict[str, Any]] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        category = item.get("category")
        if not isinstance(category, str) or not category.strip():
            continue
        reason = item.get("reason")
        out.append({
            "category": category.strip(),
            "confidence": _confidence(item.get("confidence")),
            "reason": reason if isinstance(reason, str) else "",
        })
    if not out:
        raise ValueError("no usable category suggestions")
    return out


def _confidence_score(confidence: float) -> int:
    # 0~1 小数或 0~100 整数都接受
    pct = confidence * 100 if 0 < confidence <= 1 else confidence
    return int(max(0, min(100, round(pct))))


def suggest_category(
    db: Session,
    product_id: Any,
    *,
    model: Optional[str] = None,
    llm: Optional[CompletionClient] = None,
) -> OptimizationResult:
    product = _load_product(db, product_id)
    llm = llm or get_llm_client()
    original = product.category or ""

    prompt = build_category_prompt(
        title=product.title or "",
        description=product.description or "",
        brand=product.brand or "",
        current_category=original,
    )
    text = _call_llm(llm, "category", prompt, CATEGORY_MAX_TOKENS, CATEGORY_TEMPERATURE, model)
    try:
        suggestions = parse_category_suggestions(text)
    except ValueError as e:
        raise UpstreamError(f"category: {e}") from e

    best = suggestions[0]
    return _record(
        db, product, "category", original, best["category"],
        _confidence_score(best["confidence"]), improvement_percentage(original, best["category"]),
        _model_name(llm, model),
        {"current_category": original, "suggestions": suggestions},
    )


# ========== images ==========
def optimize_images(db: Session, product_id: Any) -> OptimizationResult:
    product = _load_product(db, product_id)
    images = list(product.images or [])
    suggestions = analyze_images(product.title or "", product.description or "", product.category or "", images)
    score = image_quality_score(images)

    return _record(
        db, product, "images", f"{len(images)} images", "Image analysis completed",
        score, 0.0, RULES_MODEL,
        {"image_count": len(images), "suggestions": suggestions},
    )


# ========== apply ==========
def apply_optimization(
    db: Session,
    *,
    optimization_id: Optional[str],
    product_id: Any,
    optimization_type: str,
    optimized_value: str,
) -> Dict[str, Any]:
    """把优化结果写回商品的单列（title / description / category）"""
    column = (optimization_type or "").strip().lower()
    if column not in APPLICABLE_COLUMNS:
        raise InvalidArgumentError(f"optimization type {optimization_type!r} cannot be applied")
    if get_product(db, product_id) is None:
        raise NotFoundError("Product not found")

    affected = update_product_column(db, product_id, column, optimized_value)
    if affected == 0:
        db.rollback()
        raise NotFoundError("Product not found")

    record_updated = mark_applied(db, optimization_id) if optimization_id else 0
    db.commit()

    logger.info("optimizer.applied product_id=%s type=%s record=%s", product_id, column, optimization_id)
    return {
        "status": "applied",
        "product_id": str(product_id),
        "optimization_id": optimization_id,
        "optimization_type": column,
        "optimized_value": optimized_value,
        "record_updated": bool(record_updated),
    }
