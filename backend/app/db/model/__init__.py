# 聚合导入所有模型，供 Alembic 发现

from .connector import Connector, CONNECTOR_ACTIVE, CONNECTOR_INACTIVE
from .product import Product, PRODUCT_ACTIVE, PRODUCT_INACTIVE
from .inventory import InventoryLevel, UNKNOWN_PRODUCT_ID
from .catalog import Organization, Channel, FeedVariant, Issue, CHANNEL_ACTIVE, CHANNEL_INACTIVE, ISSUE_OPEN, ISSUE_RESOLVED
from .optimization import OptimizationRecord
from .user import User

__all__ = [
    # store
    "Connector", "Product", "InventoryLevel",
    # others
    "Organization", "Channel", "FeedVariant", "Issue", "OptimizationRecord", "User",
    # status constants
    "CONNECTOR_ACTIVE", "CONNECTOR_INACTIVE", "PRODUCT_ACTIVE", "PRODUCT_INACTIVE", "UNKNOWN_PRODUCT_ID",
    "CHANNEL_ACTIVE", "CHANNEL_INACTIVE", "ISSUE_OPEN", "ISSUE_RESOLVED",
]
