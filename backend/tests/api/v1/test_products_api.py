from decimal import Decimal
from typing import Any, Dict

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.v1 import product as product_module
from app.api.v1.product import router as product_router
from app.core.errors import NotFoundError, UpstreamError
from app.db.session import get_db
from app.services.seo import ProductSnapshot, build_fallback_enhancement


@pytest.fixture()
def client(db) -> TestClient:
    app = FastAPI()
    app.include_router(product_router)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture()
def hat(make_product):
    meta = build_fallback_enhancement(ProductSnapshot(title="Blue Hat", category="Hats", brand="Acme")).to_metadata(
        enhanced=False
    )
    return make_product(price=Decimal("19.99"), images=["https://x/1.jpg"], meta=meta)


# ---------- 列表 / 详情 ----------
def test_list_products_paginates(client, hat, monkeypatch):
    captured: Dict[str, Any] = {}

    def fake_page(db, **kwargs):
        captured.update(kwargs)
        return [hat], 41

    monkeypatch.setattr(product_module, "fetch_products_page", fake_page)

    resp = client.get("/products", params={"connector_id": "c1", "status": "active", "page": 3, "page_size": 20})

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 41
    assert data["page"] == 3
    assert data["items"][0]["price"] == 19.99
    assert data["items"][0]["metadata"]["seo_enhanced"] is False
    assert captured == {"connector_id": "c1", "status": "active", "q": None, "page": 3, "page_size": 20}


def test_list_products_rejects_bad_page_size(client):
    assert client.get("/products", params={"page_size": 1000}).status_code == 422


def test_product_detail_includes_seo_score(client, hat, monkeypatch):
    monkeypatch.setattr(product_module, "get_product", lambda db, pid: hat)

    resp = client.get(f"/products/{hat.id}")

    assert resp.status_code == 200
    assert resp.json()["seo_score"] == 83


def test_product_detail_not_found(client, monkeypatch):
    monkeypatch.setattr(product_module, "get_product", lambda db, pid: None)

    assert client.get("/products/nope").status_code == 404


# ---------- 手工创建关闭 / 软删除 ----------
def test_manual_create_is_not_implemented(client):
    resp = client.post("/products", json={"title": "Hand made"})

    assert resp.status_code == 501


def test_delete_soft_deletes(client, hat, db, monkeypatch):
    deleted = []
    monkeypatch.setattr(product_module, "get_product", lambda db, pid: hat)
    monkeypatch.setattr(product_module, "soft_delete_product", lambda db, pid: deleted.append(pid) or 1)

    resp = client.delete(f"/products/{hat.id}")

    assert resp.status_code == 204
    assert deleted == [hat.id]
    assert db.commits == 1


# ---------- SEO ----------
def test_enhance_passes_options(client, monkeypatch):
    seen = {}

    def fake_enhance(db, product_id, options):
        seen["product_id"] = product_id
        seen["options"] = options
        return {"product_id": product_id, "source": "ai"}

    monkeypatch.setattr(product_module, "enhance_product_seo", fake_enhance)

    resp = client.post("/products/p1/seo/enhance", json={"language": "de", "optimization_level": "aggressive"})

    assert resp.status_code == 200
    assert seen["product_id"] == "p1"
    assert seen["options"].language == "de"
    assert seen["options"].optimization_level == "aggressive"
    assert seen["options"].optimization_type == "all"


def test_enhance_rejects_unknown_language(client):
    assert client.post("/products/p1/seo/enhance", json={"language": "xx"}).status_code == 422


def test_enhance_missing_product_is_404(client, monkeypatch, db):
    def fake_enhance(db, product_id, options):
        raise NotFoundError("Product not found")

    monkeypatch.setattr(product_module, "enhance_product_seo", fake_enhance)

    assert client.post("/products/p1/seo/enhance", json={}).status_code == 404
    assert db.rollbacks == 1


def test_bulk_enhance(client, monkeypatch):
    monkeypatch.setattr(
        product_module, "bulk_enhance_products",
        lambda db, ids, options: {"status": "completed", "processed": len(ids)},
    )

    resp = client.post("/products/seo/bulk-enhance", json={"product_ids": ["a", "b"]})

    assert resp.json() == {"status": "completed", "processed": 2}


def test_bulk_enhance_requires_ids(client):
    assert client.post("/products/seo/bulk-enhance", json={"product_ids": []}).status_code == 422


# ---------- 图片上传 ----------
def test_upload_image(client, monkeypatch):
    monkeypatch.setattr(product_module, "upload_image", lambda content, name, ctype: f"https://cdn/{name}?{ctype}")

    resp = client.post(
        "/products/images/upload", params={"filename": "hat.png"}, content=b"\x89PNG",
        headers={"Content-Type": "image/png"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"url": "https://cdn/hat.png?image/png", "filename": "hat.png", "size": 4}


def test_upload_empty_body_is_400(client):
    assert client.post("/products/images/upload", params={"filename": "a.png"}, content=b"").status_code == 400


def test_upload_storage_failure(client, monkeypatch):
    def fail(content, name, ctype):
        raise UpstreamError("image upload failed: status=403")

    monkeypatch.setattr(product_module, "upload_image", fail)

    resp = client.post("/products/images/upload", params={"filename": "a.png"}, content=b"x")

    assert resp.status_code == 500
