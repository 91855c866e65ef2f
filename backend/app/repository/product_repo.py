# product database repository

from __future__ import annotations

import logging
import math
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, update, func, or_, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from app.core.errors import ConstraintMissingError
from app.db.model.connector import Connector
from app.db.model.product import Product, PRODUCT_ACTIVE, PRODUCT_INACTIVE
from app.integrations.shopify.payload_utils import shop_host


logger = logging.getLogger(__name__)

products_table = Product.__table__

'''
  webhook / sync 写库的字段白名单（列名，不是 ORM 属性名：metadata 列的属性叫 meta）
  upsert 冲突时只覆盖这些列
'''
UPSERT_COLUMNS = [
    "title",
    "description",
    "price",
    "compare_at_price",
    "currency",
    "sku",
    "gtin",
    "brand",
    "category",
    "images",
    "variants",
    "custom_labels",
    "metadata",
    "status",
]

CONFLICT_KEYS = ["connector_id", "external_id"]

# 优化器可直接回写的列
APPLICABLE_COLUMNS = {"title", "description", "category"}


def _clean_row_values(row: dict) -> dict:
    """
    Normalize a row so it only holds plain values safe for a bound INSERT/UPDATE.
    """
    clean: dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, Decimal) and not value.is_finite():
            value = None
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            value = None
        clean[str(key)] = value
    return clean


def _is_missing_constraint(err: Exception) -> bool:
    return "no unique or exclusion constraint" in str(err).lower()


# ========= 写：upsert / insert / update =========
def upsert_product(db: Session, row: Dict[str, Any]) -> uuid.UUID:
    """
    INSERT ... ON CONFLICT (connector_id, external_id) DO UPDATE
    在 SAVEPOINT 里执行：唯一约束缺失时只回滚 savepoint，并抛 ConstraintMissingError 让上层走兜底。
    """
    values = _clean_row_values(row)
    stmt = insert(products_table).values(**values)
    updates = {col: stmt.excluded[col] for col in UPSERT_COLUMNS if col in values}
    updates["updated_at"] = func.now()

    upsert_stmt = stmt.on_conflict_do_update(
        index_elements=CONFLICT_KEYS,
        set_=updates,
    ).returning(products_table.c.id)

    try:
        with db.begin_nested():
            product_id = db.execute(upsert_stmt).scalar_one()
    except ProgrammingError as e:
        if _is_missing_constraint(e):
            logger.warning("product.upsert.constraint_missing external_id=%s", values.get("external_id"))
            raise ConstraintMissingError("unique (connector_id, external_id) is missing") from e
        raise
    return product_id


def insert_product(db: Session, row: Dict[str, Any]) -> uuid.UUID:
    values = _clean_row_values(row)
    values.setdefault("id", uuid.uuid4())
    db.execute(insert(products_table).values(**values))
    return values["id"]


def update_product_fields(db: Session, product_id: Any, values: Dict[str, Any]) -> int:
    """按 id 更新若干列（列名），顺带 updated_at = now()。返回受影响行数。"""
    clean = _clean_row_values(values)
    clean["updated_at"] = func.now()
    res = db.execute(
        update(products_table).where(products_table.c.id == product_id).values(**clean)
    )
    return int(res.rowcount or 0)


def update_product_column(db: Session, product_id: Any, column: str, value: Any) -> int:
    if column not in APPLICABLE_COLUMNS:
        raise ValueError(f"column {column!r} is not writable here")
    return update_product_fields(db, product_id, {column: value})


def merge_product_metadata(db: Session, product: Product, patch: Dict[str, Any]) -> int:
    """metadata 浅合并 patch 后整体写回"""
    merged = dict(product.meta or {})
    merged.update(patch or {})
    return update_product_fields(db, product.id, {"metadata": merged})


def soft_delete_product(db: Session, product_id: Any) -> int:
    return update_product_fields(db, product_id, {"status": PRODUCT_INACTIVE})


def deactivate_products_by_connector(db: Session, connector_id: str) -> int:
    res = db.execute(
        update(products_table)
        .where(products_table.c.connector_id == connector_id)
        .values(status=PRODUCT_INACTIVE, updated_at=func.now())
    )
    return int(res.rowcount or 0)


# ========= 读 =========
def get_product(db: Session, product_id: Any) -> Optional[Product]:
    try:
        pid = product_id if isinstance(product_id, uuid.UUID) else uuid.UUID(str(product_id))
    except (ValueError, TypeError):
        return None
    return db.get(Product, pid)


def find_product_by_key(db: Session, connector_id: str, external_id: str) -> Optional[Product]:
    return db.execute(
        select(Product).where(Product.connector_id == connector_id, Product.external_id == str(external_id))
    ).scalars().first()


def find_product_by_shop_and_external_id(db: Session, shop_domain: str, external_id: str) -> Optional[Product]:
    """(connector.shop_domain, external_id) 定位商品"""
    host = shop_host(shop_domain)
    return db.execute(
        select(Product)
        .join(Connector, Connector.id == Product.connector_id)
        .where(Connector.shop_domain == host, Product.external_id == str(external_id))
        .order_by(Product.created_at.asc())
    ).scalars().first()


def find_product_id_by_inventory_item(db: Session, connector_id: str, inventory_item_id: str) -> Optional[str]:
    """
    扫描 variants JSON：变体的 inventory_item_id（或 id）等于入参即命中。
    """
    sql = text(
        """
        SELECT p.id
          FROM products p
         WHERE p.connector_id = :connector_id
           AND EXISTS (
                SELECT 1
                  FROM jsonb_array_elements(COALESCE(p.variants, '[]'::jsonb)) AS v(doc)
                 WHERE v.doc->>'inventory_item_id' = :item_id
                    OR v.doc->>'id' = :item_id
           )
         ORDER BY p.created_at
         LIMIT 1
        """
    )
    row = db.execute(sql, {"connector_id": connector_id, "item_id": str(inventory_item_id)}).first()
    return str(row[0]) if row else None


def fetch_products_page(
    db: Session,
    *,
    connector_id: Optional[str] = None,
    status: Optional[str] = None,
    q: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Product], int]:
    """分页查询，返回 (rows, total)"""
    conditions = []
    if connector_id:
        conditions.append(Product.connector_id == connector_id)
    if status:
        conditions.append(Product.status == status.upper())
    if q:
        like = f"%{q.strip()}%"
        conditions.append(or_(Product.title.ilike(like), Product.sku.ilike(like), Product.brand.ilike(like)))

    total = db.execute(select(func.count()).select_from(Product).where(*conditions)).scalar_one()
    rows = db.execute(
        select(Product)
        .where(*conditions)
        .order_by(Product.updated_at.desc(), Product.id.asc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    ).scalars().all()
    return list(rows), int(total)


def list_products_for_feed(db: Session, *, connector_id: Optional[str] = None, only_active: bool = False) -> List[Product]:
    """feed / export 用：稳定排序（created_at, id），保证输出确定"""
    stmt = select(Product)
    if connector_id:
        stmt = stmt.where(Product.connector_id == connector_id)
    if only_active:
        stmt = stmt.where(Product.status == PRODUCT_ACTIVE)
    stmt = stmt.order_by(Product.created_at.asc(), Product.id.asc())
    return list(db.execute(stmt).scalars().all())


def get_products_by_ids(db: Session, product_ids: List[Any]) -> List[Product]:
    ids: List[uuid.UUID] = []
    for raw in product_ids or []:
        try:
            ids.append(raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw)))
        except (ValueError, TypeError):
            continue
    if not ids:
        return []
    return list(db.execute(select(Product).where(Product.id.in_(ids))).scalars().all())


def product_to_dict(p: Product) -> Dict[str, Any]:
    """ORM 行 -> 普通 dict（列名为 key，metadata 不用 meta）"""
    return {
        "id": str(p.id),
        "connector_id": p.connector_id,
        "external_id": p.external_id,
        "title": p.title,
        "description": p.description,
        "price": p.price,
        "compare_at_price": p.compare_at_price,
        "currency": p.currency,
        "sku": p.sku,
        "gtin": p.gtin,
        "brand": p.brand,
        "category": p.category,
        "images": list(p.images or []),
        "variants": list(p.variants or []),
        "custom_labels": list(p.custom_labels or []),
        "metadata": dict(p.meta or {}),
        "status": p.status,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }
