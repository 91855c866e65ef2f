"""
商品级 SEO 增强（显式操作）：跑流水线后把增强记录写进 metadata，seo_enhanced=True。
批量版逐个处理，单个失败只记 errors。
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ListingError, NotFoundError
from app.integrations.llm import get_llm_client
from app.repository.product_repo import get_product, merge_product_metadata
from app.services.optimizer.rules import optimize_title_with_rules, suggest_category_with_rules
from app.services.seo.enhancement import ProductSnapshot, SEOEnhancement
from app.services.seo.pipeline import CompletionClient, enhance_product
from app.services.seo.prompts import SEOOptions
from app.services.seo.scoring import calculate_seo_score
from app.utils.clock import now_utc


logger = logging.getLogger(__name__)


def product_seo_score(product: Any) -> int:
    """商品当前 metadata 里的增强记录打分"""
    meta = product.get("metadata") if isinstance(product, dict) else getattr(product, "meta", None)
    return calculate_seo_score(SEOEnhancement.from_metadata(meta))


def enhance_product_seo(
    db: Session,
    product_id: Any,
    options: Optional[SEOOptions] = None,
    *,
    llm: Optional[CompletionClient] = None,
) -> Dict[str, Any]:
    product = get_product(db, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    llm = llm or get_llm_client()
    result = enhance_product(ProductSnapshot.from_product(product), llm, options or SEOOptions())

    enhanced_at = now_utc().isoformat()
    merge_product_metadata(db, product, result.enhancement.to_metadata(enhanced=True, enhanced_at=enhanced_at))
    db.commit()

    logger.info("seo.enhanced product_id=%s source=%s score=%s", product.id, result.source, result.score)
    return {"product_id": str(product.id), "seo_enhanced_at": enhanced_at, **result.to_dict()}


def bulk_enhance_products(
    db: Session,
    product_ids: List[Any],
    options: Optional[SEOOptions] = None,
    *,
    llm: Optional[CompletionClient] = None,
) -> Dict[str, Any]:
    llm = llm or get_llm_client()
    results: List[Dict[str, Any]] = []
    errors: List[Dict[str, Any]] = []

    for pid in product_ids or []:
        try:
            outcome = enhance_product_seo(db, pid, options, llm=llm)
        except ListingError as e:
            errors.append({"product_id": str(pid), "error": str(e)})
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("seo.bulk.product_failed product_id=%s err=%s", pid, e)
            errors.append({"product_id": str(pid), "error": "database error"})
            continue

        # 非交互路径附带规则版标题 / 类目建议
        product = get_product(db, pid)
        if product is not None:
            outcome["suggested_title"] = optimize_title_with_rules(
                product.title or "", product.brand or "", product.category or "", outcome["enhancement"]["keywords"]
            )
            outcome["suggested_categories"] = suggest_category_with_rules(product.title or "", product.description or "")
        results.append(outcome)

    status = "completed" if not errors else "completed_with_errors"
    logger.info("seo.bulk.done total=%s ok=%s errors=%s", len(product_ids or []), len(results), len(errors))
    return {
        "status": status,
        "message": f"completed with {len(errors)} errors" if errors else "completed",
        "processed": len(product_ids or []),
        "enhanced": len(results),
        "results": results,
        "errors": errors,
    }
