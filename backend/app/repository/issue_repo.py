# issue database repository

from __future__ import annotations
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.db.model.catalog import Issue, ISSUE_OPEN, ISSUE_RESOLVED
from app.utils.clock import now_utc


IssueKey = Tuple[str, str]   # (product_id, type)


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


def get_issue(db: Session, issue_id: Any) -> Optional[Issue]:
    iid = _as_uuid(issue_id)
    return db.get(Issue, iid) if iid else None


def list_issues(
    db: Session,
    *,
    severity: Optional[str] = None,
    channel: Optional[str] = None,
    status: Optional[str] = None,
    product_id: Optional[Any] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Issue], int]:
    """分页查询，返回 (rows, total)；最新的在前"""
    conditions = []
    if severity:
        conditions.append(Issue.severity == severity.upper())
    if channel:
        conditions.append(Issue.channel == channel.upper())
    if status:
        conditions.append(Issue.status == status.upper())
    if product_id:
        pid = _as_uuid(product_id)
        if pid is None:
            return [], 0
        conditions.append(Issue.product_id == pid)

    total = db.execute(select(func.count()).select_from(Issue).where(*conditions)).scalar_one()
    rows = db.execute(
        select(Issue)
        .where(*conditions)
        .order_by(Issue.created_at.desc(), Issue.id.asc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    ).scalars().all()
    return list(rows), int(total)


def open_issues_by_key(db: Session, channel: str) -> Dict[IssueKey, Issue]:
    """某渠道所有 OPEN 的问题单，按 (product_id, type) 建索引"""
    rows = db.execute(
        select(Issue).where(Issue.channel == channel, Issue.status == ISSUE_OPEN)
    ).scalars().all()
    return {(str(r.product_id), r.type): r for r in rows}


def create_issue(
    db: Session,
    *,
    product_id: Any,
    connector_id: Optional[str],
    channel: str,
    type: str,
    severity: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Issue:
    issue = Issue(
        id=uuid.uuid4(),
        product_id=_as_uuid(product_id),
        connector_id=connector_id,
        channel=channel,
        type=type,
        severity=severity,
        message=message,
        details=details or {},
        status=ISSUE_OPEN,
    )
    db.add(issue)
    db.flush()
    return issue


def resolve_issue(db: Session, issue: Issue) -> Issue:
    """幂等：已解决的不改 resolved_at"""
    if issue.status != ISSUE_RESOLVED:
        issue.status = ISSUE_RESOLVED
        issue.resolved_at = now_utc()
        db.flush()
    return issue
