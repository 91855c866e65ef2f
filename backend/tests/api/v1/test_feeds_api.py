import json
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.v1 import feeds as feeds_module
from app.api.v1.feeds import router as feeds_router
from app.db.session import get_db


@pytest.fixture()
def rows(make_product):
    created = datetime(2024, 5, 1, tzinfo=timezone.utc)
    return [
        make_product(external_id="111", price=Decimal("19.99"), meta={"handle": "blue-hat"},
                     images=["https://x/1.jpg"], created_at=created, updated_at=created),
        make_product(external_id="222", price=Decimal("0"), created_at=created, updated_at=created),
    ]


@pytest.fixture()
def client(db, rows, make_connector, monkeypatch) -> TestClient:
    calls = []

    def fake_list(db, *, connector_id=None, only_active=False):
        calls.append({"connector_id": connector_id, "only_active": only_active})
        return rows

    monkeypatch.setattr(feeds_module, "list_products_for_feed", fake_list)
    monkeypatch.setattr(feeds_module, "list_connectors", lambda db: [make_connector()])

    app = FastAPI()
    app.include_router(feeds_router)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    test_client.feed_calls = calls
    return test_client


def test_google_feed(client):
    resp = client.get("/feeds/google.xml")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/xml")
    items = ET.fromstring(resp.content).findall("./channel/item")
    assert len(items) == 1
    assert client.feed_calls == [{"connector_id": None, "only_active": True}]


def test_facebook_feed_is_attachment(client):
    resp = client.get("/feeds/facebook.csv", params={"connector_id": "c1"})

    assert resp.status_code == 200
    assert 'filename="facebook_catalog.csv"' in resp.headers["content-disposition"]
    lines = resp.text.splitlines()
    assert len(lines) == 3
    assert lines[1].endswith("https://demo.myshopify.com/products/blue-hat")
    assert client.feed_calls[0]["connector_id"] == "c1"


@pytest.mark.parametrize("fmt, ext, suffix", [
    ("csv", "csv", ""),
    ("excel", "csv", "_excel"),
    ("xml", "xml", ""),
    ("json", "json", ""),
])
def test_export_formats(client, fmt, ext, suffix):
    resp = client.get("/exports/products", params={"format": fmt})

    assert resp.status_code == 200
    disposition = resp.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="products_')
    assert disposition.endswith(f'{suffix}.{ext}"')
    assert client.feed_calls == [{"connector_id": None, "only_active": False}]


def test_excel_export_starts_with_bom(client):
    resp = client.get("/exports/products", params={"format": "excel"})

    assert resp.content.startswith(b"\xef\xbb\xbf")


def test_json_export_body(client):
    data = json.loads(client.get("/exports/products", params={"format": "json"}).content)

    assert data["export_info"]["total_products"] == 2
    assert [p["external_id"] for p in data["products"]] == ["111", "222"]


def test_unknown_export_format_is_422(client):
    assert client.get("/exports/products", params={"format": "pdf"}).status_code == 422
