from __future__ import annotations
from datetime import datetime, timezone

def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def format_db_timestamp(value) -> str:
    """导出用的 'YYYY-MM-DD HH:MM:SS'；None/空值返回空串。"""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return str(value) if value else ""
