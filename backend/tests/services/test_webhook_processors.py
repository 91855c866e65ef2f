"""webhook 处理器：仓储函数全部在 webhook_processors 命名空间上 monkeypatch，用内存 dict 当库"""

from decimal import Decimal
from typing import Any, Dict

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import ConstraintMissingError, InvalidArgumentError, NotFoundError
from app.services.sync import webhook_processors as wp


BLUE_HAT = {
    "id": 111,
    "title": "Blue Hat",
    "body_html": "",
    "vendor": "Acme",
    "product_type": "Hats",
    "handle": "blue-hat",
    "tags": "winter, wool",
    "images": [{"src": "https://x/1.jpg"}],
    "variants": [
        {"id": 9, "price": "19.99", "sku": "BH-1", "inventory_quantity": 7, "inventory_management": "shopify",
         "barcode": "012345678905"},
    ],
}


class FakeStore:
    """(connector_id, external_id) -> 行 dict"""

    def __init__(self, make_product, connector):
        self.make_product = make_product
        self.connector = connector
        self.rows: Dict[Any, Dict[str, Any]] = {}
        self.inventory: Dict[Any, Dict[str, Any]] = {}
        self.upsert_calls = 0

    def _obj(self, row):
        return self.make_product(
            id=row["id"], connector_id=row["connector_id"], external_id=row["external_id"],
            variants=row["variants"], currency=row["currency"], status=row["status"], meta=row["metadata"],
        )

    def install(self, monkeypatch, *, constraint_missing=False):
        store = self

        def get_connector_by_shop(db, shop):
            return store.connector if shop == store.connector.shop_domain else None

        def find_product_by_key(db, connector_id, external_id):
            row = store.rows.get((connector_id, external_id))
            return store._obj(row) if row else None

        def find_product_by_shop_and_external_id(db, shop, external_id):
            if shop != store.connector.shop_domain:
                return None
            return find_product_by_key(db, store.connector.id, external_id)

        def upsert_product(db, row):
            store.upsert_calls += 1
            if constraint_missing:
                raise ConstraintMissingError("unique (connector_id, external_id) is missing")
            key = (row["connector_id"], row["external_id"])
            existing = store.rows.get(key)
            pid = existing["id"] if existing else f"p{len(store.rows) + 1}"
            store.rows[key] = {**row, "id": pid}
            return pid

        def insert_product(db, row):
            pid = f"p{len(store.rows) + 1}"
            store.rows[(row["connector_id"], row["external_id"])] = {**row, "id": pid}
            return pid

        def update_product_fields(db, product_id, values):
            for row in store.rows.values():
                if row["id"] == product_id:
                    row.update(values)
                    return 1
            return 0

        def soft_delete_product(db, product_id):
            return update_product_fields(db, product_id, {"status": "INACTIVE"})

        def find_product_id_by_inventory_item(db, connector_id, item_id):
            for row in store.rows.values():
                for v in row["variants"]:
                    if str(v.get("inventory_item_id")) == item_id:
                        return row["id"]
            return None

        def upsert_inventory_level(db, row):
            key = (row["connector_id"], row["inventory_item_id"], row["location_id"])
            store.inventory[key] = {**store.inventory.get(key, {}), **row}
            return 1

        for name, fn in dict(
            get_connector_by_shop=get_connector_by_shop,
            find_product_by_key=find_product_by_key,
            find_product_by_shop_and_external_id=find_product_by_shop_and_external_id,
            upsert_product=upsert_product,
            insert_product=insert_product,
            update_product_fields=update_product_fields,
            soft_delete_product=soft_delete_product,
            find_product_id_by_inventory_item=find_product_id_by_inventory_item,
            upsert_inventory_level=upsert_inventory_level,
            deactivate_connector=lambda db, cid: 1,
            deactivate_products_by_connector=lambda db, cid: len(store.rows),
        ).items():
            monkeypatch.setattr(wp, name, fn)
        return self

    def only_row(self):
        assert len(self.rows) == 1
        return next(iter(self.rows.values()))


@pytest.fixture()
def store(monkeypatch, make_product, make_connector):
    return FakeStore(make_product, make_connector()).install(monkeypatch)


SHOP = "demo.myshopify.com"


# ---------- products/create ----------
def test_create_writes_one_active_row(db, store):
    result = wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)

    row = store.only_row()
    assert result["status"] == "success"
    assert result["external_id"] == "111"
    assert row["external_id"] == "111"
    assert row["price"] == Decimal("19.99")
    assert row["images"] == ["https://x/1.jpg"]
    assert row["sku"] == "BH-1"
    assert row["gtin"] == "012345678905"
    assert row["brand"] == "Acme"
    assert row["category"] == "Hats"
    assert row["custom_labels"] == ["winter", "wool"]
    assert row["status"] == "ACTIVE"
    assert row["metadata"]["seo_enhanced"] is False
    assert row["metadata"]["seo_title"] == "Blue Hat"
    assert row["metadata"]["handle"] == "blue-hat"
    assert db.commits == 1


def test_replaying_create_is_idempotent(db, store):
    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)
    first = dict(store.only_row())
    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)

    assert store.only_row() == first


def test_create_for_unknown_shop_is_not_found(db, store):
    with pytest.raises(NotFoundError):
        wp.dispatch_webhook(db, "products/create", "other.myshopify.com", BLUE_HAT)
    assert store.rows == {}


def test_create_without_product_id_is_rejected(db, store):
    with pytest.raises(InvalidArgumentError):
        wp.process_product_create(db, {"title": "No id"}, SHOP)


def test_create_falls_back_when_unique_constraint_missing(db, monkeypatch, make_product, make_connector):
    store = FakeStore(make_product, make_connector()).install(monkeypatch, constraint_missing=True)

    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)
    wp.dispatch_webhook(db, "products/create", SHOP, {**BLUE_HAT, "title": "Blue Hat v2"})

    row = store.only_row()
    assert store.upsert_calls == 2
    assert row["title"] == "Blue Hat v2"


def test_create_reactivates_soft_deleted_product(db, store):
    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)
    wp.dispatch_webhook(db, "products/delete", SHOP, {"id": 111})
    assert store.only_row()["status"] == "INACTIVE"

    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)

    assert store.only_row()["status"] == "ACTIVE"


# ---------- products/update ----------
def test_update_preserves_inventory_when_payload_omits_it(db, store):
    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)
    update = {**BLUE_HAT, "variants": [
        {"id": 9, "price": "19.99", "sku": "BH-1", "inventory_management": "", "inventory_policy": ""},
    ]}

    wp.dispatch_webhook(db, "products/update", SHOP, update)

    variant = store.only_row()["variants"][0]
    assert variant["inventory_quantity"] == 7
    assert variant["inventory_management"] == "shopify"


def test_update_applies_tracked_zero(db, store):
    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)
    update = {**BLUE_HAT, "variants": [
        {"id": 9, "price": "19.99", "sku": "BH-1", "inventory_quantity": 0, "inventory_management": "shopify"},
    ]}

    wp.dispatch_webhook(db, "products/update", SHOP, update)

    assert store.only_row()["variants"][0]["inventory_quantity"] == 0


def test_replaying_update_is_idempotent(db, store):
    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)
    update = {**BLUE_HAT, "title": "Blue Hat v2", "variants": [
        {"id": 9, "price": "24.99", "sku": "BH-1", "inventory_management": "", "inventory_policy": ""},
    ]}

    first_result = wp.dispatch_webhook(db, "products/update", SHOP, update)
    first = dict(store.only_row())
    second_result = wp.dispatch_webhook(db, "products/update", SHOP, update)

    assert store.only_row() == first
    assert first["title"] == "Blue Hat v2"
    assert first["price"] == Decimal("24.99")
    assert first["variants"][0]["inventory_quantity"] == 7
    assert first_result["product_id"] == second_result["product_id"] == "p1"
    assert db.commits == 3


def test_update_unknown_product_is_not_found(db, store):
    with pytest.raises(NotFoundError):
        wp.dispatch_webhook(db, "products/update", SHOP, BLUE_HAT)
    assert db.commits == 0


# ---------- products/delete ----------
def test_delete_soft_deletes(db, store):
    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)

    result = wp.dispatch_webhook(db, "products/delete", SHOP, {"id": 111})

    assert result["action"] == "delete"
    assert store.only_row()["status"] == "INACTIVE"


def test_delete_unknown_product_is_not_found(db, store):
    with pytest.raises(NotFoundError):
        wp.dispatch_webhook(db, "products/delete", SHOP, {"id": 404})


# ---------- inventory_levels/update ----------
def test_inventory_update_links_known_product(db, store):
    payload = {**BLUE_HAT, "variants": [{**BLUE_HAT["variants"][0], "inventory_item_id": 555}]}
    wp.dispatch_webhook(db, "products/create", SHOP, payload)

    result = wp.dispatch_webhook(db, "inventory_levels/update", SHOP, {
        "inventory_item_id": 555, "location_id": 77, "available": 12,
    })

    level = store.inventory[("c1", "555", "77")]
    assert result["status"] == "success"
    assert level["product_id"] == "p1"
    assert level["available_quantity"] == 12


def test_inventory_update_for_unknown_item_records_warning(db, store):
    result = wp.dispatch_webhook(db, "inventory_levels/update", SHOP, {
        "inventory_item_id": 999, "location_id": 1, "available": 3, "committed": 1,
    })

    level = store.inventory[("c1", "999", "1")]
    assert result["status"] == "warning"
    assert level["product_id"] == "unknown"
    assert level["committed_quantity"] == 1
    assert "incoming_quantity" not in level
    assert db.commits == 1


def test_inventory_update_requires_ids(db, store):
    with pytest.raises(InvalidArgumentError):
        wp.dispatch_webhook(db, "inventory_levels/update", SHOP, {"available": 3})


# ---------- app/uninstalled ----------
def test_uninstall_deactivates_connector_and_products(db, store):
    wp.dispatch_webhook(db, "products/create", SHOP, BLUE_HAT)

    result = wp.dispatch_webhook(db, "app/uninstalled", SHOP, {})

    assert result["status"] == "success"
    assert result["products_deactivated"] == 1


def test_uninstall_cascade_failure_is_a_warning(db, store, monkeypatch):
    def boom(db, connector_id):
        raise OperationalError("UPDATE products", {}, Exception("lock timeout"))

    monkeypatch.setattr(wp, "deactivate_products_by_connector", boom)

    result = wp.dispatch_webhook(db, "app/uninstalled", SHOP, {})

    assert result["status"] == "warning"
    assert db.commits == 1      # 连接器已停用
    assert db.rollbacks == 1


# ---------- 分发 ----------
def test_unknown_topic_is_ignored(db, store):
    result = wp.dispatch_webhook(db, "orders/create", SHOP, {"id": 1})

    assert result["status"] == "ignored"
    assert store.rows == {}


def test_topic_match_is_case_insensitive(db, store):
    wp.dispatch_webhook(db, "Products/Create", SHOP, BLUE_HAT)

    assert len(store.rows) == 1


def test_build_product_row_uses_shop_currency_and_empty_variants():
    row = wp.build_product_row("c1", {"id": 5, "title": "Gift card"}, currency="aud")

    assert row["currency"] == "AUD"
    assert row["price"] is None
    assert row["sku"] is None
    assert row["variants"] == []
