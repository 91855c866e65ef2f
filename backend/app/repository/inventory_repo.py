# inventory_levels repository

from __future__ import annotations
import logging
from typing import Any, Dict, List

from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.db.model.inventory import InventoryLevel

logger = logging.getLogger(__name__)

inventory_table = InventoryLevel.__table__

CONFLICT_KEYS = ["connector_id", "inventory_item_id", "location_id"]
UPDATE_COLUMNS = [
    "product_id",
    "available_quantity",
    "committed_quantity",
    "incoming_quantity",
    "on_hand_quantity",
]


def upsert_inventory_level(db: Session, row: Dict[str, Any]) -> int:
    """按 (connector_id, inventory_item_id, location_id) upsert 一行库存"""
    stmt = insert(inventory_table).values(**row)
    updates = {col: stmt.excluded[col] for col in UPDATE_COLUMNS if col in row}
    updates["last_updated"] = func.now()
    res = db.execute(stmt.on_conflict_do_update(index_elements=CONFLICT_KEYS, set_=updates))
    return int(res.rowcount or 0)


def list_levels_for_product(db: Session, product_id: str) -> List[InventoryLevel]:
    return list(
        db.execute(
            select(InventoryLevel)
            .where(InventoryLevel.product_id == str(product_id))
            .order_by(InventoryLevel.location_id.asc())
        ).scalars().all()
    )
