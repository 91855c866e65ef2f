from fastapi import APIRouter

from .routes_health import router as health_router
from .connectors import router as connectors_router
from .webhooks_shopify import router as webhooks_router
from .product import router as product_router
from .feeds import router as feeds_router
from .optimizer import router as optimizer_router
from .channels import router as channels_router
from .issues import router as issues_router


api_v1 = APIRouter()
api_v1.include_router(health_router)
api_v1.include_router(connectors_router)
api_v1.include_router(webhooks_router)      # Shopify 服务器回调，靠 HMAC 鉴权
api_v1.include_router(product_router)
api_v1.include_router(feeds_router)
api_v1.include_router(optimizer_router)
api_v1.include_router(channels_router)
api_v1.include_router(issues_router)
