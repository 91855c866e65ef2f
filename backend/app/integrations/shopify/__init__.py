"""
对外统一入口：从这里 import Shopify 相关的类/函数。
"""

from .shopify_client import ShopifyClient, WEBHOOK_TOPICS, generate_state, webhook_address
from .payload_utils import normalize_shop_domain, shop_host, normalize_shopify_price

from app.core.errors import AuthFailedError as ShopifyAuthError, UpstreamError as ShopifyError


__all__ = [
    "ShopifyClient", "WEBHOOK_TOPICS", "generate_state", "webhook_address",
    "normalize_shop_domain", "shop_host", "normalize_shopify_price",
    "ShopifyError", "ShopifyAuthError",
]
