# optimization_records repository

from __future__ import annotations
import uuid
from typing import Any, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.db.model.optimization import OptimizationRecord
from app.utils.clock import now_utc


def create_record(
    db: Session,
    *,
    product_id: Any,
    optimization_type: str,
    original_value: Optional[str],
    optimized_value: Optional[str],
    score: Optional[int] = None,
    improvement: Optional[float] = None,
    model: Optional[str] = None,
) -> OptimizationRecord:
    record = OptimizationRecord(
        id=uuid.uuid4(),
        product_id=product_id if isinstance(product_id, uuid.UUID) else uuid.UUID(str(product_id)),
        optimization_type=optimization_type,
        original_value=original_value,
        optimized_value=optimized_value,
        score=score,
        improvement=improvement,
        model=model,
        status="completed",
    )
    db.add(record)
    db.flush()
    return record


def mark_applied(db: Session, record_id: Any) -> int:
    try:
        rid = record_id if isinstance(record_id, uuid.UUID) else uuid.UUID(str(record_id))
    except (ValueError, TypeError):
        return 0
    res = db.execute(
        update(OptimizationRecord)
        .where(OptimizationRecord.id == rid)
        .values(status="applied", applied_at=now_utc())
    )
    return int(res.rowcount or 0)


def list_records(db: Session, *, product_id: Optional[Any] = None, limit: int = 50) -> List[OptimizationRecord]:
    stmt = select(OptimizationRecord)
    if product_id:
        try:
            pid = uuid.UUID(str(product_id))
        except (ValueError, TypeError):
            return []
        stmt = stmt.where(OptimizationRecord.product_id == pid)
    stmt = stmt.order_by(OptimizationRecord.created_at.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())
