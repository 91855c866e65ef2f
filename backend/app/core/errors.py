"""
业务异常类型：集成层 / 仓储层 / 服务层统一抛这些，API 层按 status_code 转成 HTTPException。
"""

from __future__ import annotations
from typing import Optional


class ListingError(Exception):
    """Base for all service errors."""
    status_code: int = 500


class ConfigError(ListingError):
    """Required configuration (env var) is missing."""
    status_code = 500


class UpstreamError(ListingError):
    """Storefront or LLM provider returned non-2xx or an unusable body."""
    status_code = 500

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        self.status = status
        self.body = (body or "")[:500]  # 截断，避免日志过大
        super().__init__(message)


class AuthFailedError(ListingError):
    """OAuth exchange returned no token, or the webhook signature did not match."""
    status_code = 401


class NotFoundError(ListingError):
    status_code = 404


class ConstraintMissingError(ListingError):
    """Upsert rejected because the unique key is missing. Recovered internally."""


class InvalidArgumentError(ListingError):
    status_code = 400


def to_http_exception(err: ListingError):
    """API 层统一转换：按异常自带的 status_code 返回"""
    from fastapi import HTTPException

    return HTTPException(status_code=getattr(err, "status_code", 500), detail=str(err) or type(err).__name__)
