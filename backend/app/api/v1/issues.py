# 问题单：渠道同步时的上架检查结果

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.repository.issue_repo import get_issue, list_issues, resolve_issue


logger = logging.getLogger(__name__)

router = APIRouter(tags=["issues"])


class IssueOut(BaseModel):
    id: str
    product_id: Optional[str] = None
    connector_id: Optional[str] = None
    channel: Optional[str] = None
    type: str
    severity: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
    status: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


class IssuesPage(BaseModel):
    items: List[IssueOut]
    total: int
    page: int
    page_size: int


def _issue_out(i: Any) -> IssueOut:
    return IssueOut(
        id=str(i.id),
        product_id=str(i.product_id) if i.product_id else None,
        connector_id=i.connector_id,
        channel=i.channel,
        type=i.type,
        severity=i.severity,
        message=i.message,
        details=dict(i.details or {}),
        status=i.status,
        created_at=i.created_at,
        resolved_at=i.resolved_at,
    )


@router.get("/issues", response_model=IssuesPage)
def get_issues(
    severity: Optional[Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]] = Query(None),
    channel: Optional[str] = Query(None, description="渠道类型，如 GOOGLE_MERCHANT_CENTER"),
    status: Optional[Literal["OPEN", "RESOLVED"]] = Query(None),
    resolved: Optional[bool] = Query(None, description="status 的简写；同时给出时以 status 为准"),
    product_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    if status is None and resolved is not None:
        status = "RESOLVED" if resolved else "OPEN"
    rows, total = list_issues(
        db, severity=severity, channel=channel, status=status, product_id=product_id, page=page, page_size=page_size,
    )
    return IssuesPage(items=[_issue_out(r) for r in rows], total=total, page=page, page_size=page_size)


@router.get("/issues/{issue_id}", response_model=IssueOut)
def get_issue_detail(issue_id: str, db: Session = Depends(get_db)):
    issue = get_issue(db, issue_id)
    if issue is None:
        raise HTTPException(status_code=404, detail="Issue not found")
    return _issue_out(issue)


@router.post("/issues/{issue_id}/resolve", response_model=IssueOut)
def resolve_issue_endpoint(issue_id: str, db: Session = Depends(get_db)):
    issue = get_issue(db, issue_id)
    if issue is None:
        raise HTTPException(status_code=404, detail="Issue not found")
    resolve_issue(db, issue)
    db.commit()
    logger.info("issue.resolved id=%s type=%s", issue.id, issue.type)
    return _issue_out(issue)
