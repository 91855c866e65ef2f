import asyncio
import base64
import hashlib
import hmac
import json
from typing import Any, Dict, List

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.v1 import webhooks_shopify as webhook_module
from app.api.v1.webhooks_shopify import router as webhooks_router
from app.core.config import settings
from app.core.errors import NotFoundError
from app.db.session import get_db


SECRET = "shpss_test_secret"


def _sign(body: bytes, secret: str = SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()).decode()


@pytest.fixture()
def calls(monkeypatch) -> List[Dict[str, Any]]:
    """记录 dispatch_webhook 的调用；返回值固定为 success"""
    seen: List[Dict[str, Any]] = []

    def fake_dispatch(db, topic, shop_domain, payload):
        seen.append({"topic": topic, "shop": shop_domain, "payload": payload})
        return {"action": "update", "status": "success"}

    monkeypatch.setattr(webhook_module, "dispatch_webhook", fake_dispatch)
    return seen


@pytest.fixture()
def client(db, monkeypatch) -> TestClient:
    monkeypatch.setattr(settings, "SHOPIFY_WEBHOOK_SECRET", SECRET)

    app = FastAPI()
    app.include_router(webhooks_router)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def _headers(body: bytes, *, topic="products/update", shop="demo.myshopify.com", signature=None) -> Dict[str, str]:
    headers = {"Content-Type": "application/json", "X-Shopify-Hmac-Sha256": signature or _sign(body)}
    if topic:
        headers["X-Shopify-Topic"] = topic
    if shop:
        headers["X-Shopify-Shop-Domain"] = shop
    return headers


# ---------- 签名错误：401，不触达处理器 ----------
def test_bad_signature_is_rejected_without_writes(client, calls, db):
    body = json.dumps({"id": 111, "title": "Blue Hat"}).encode()

    resp = client.post("/webhooks/shopify/products/update", content=body, headers=_headers(body, signature="AAAA"))

    assert resp.status_code == 401
    assert calls == []
    assert db.commits == 0


def test_missing_signature_is_rejected(client, calls):
    body = b'{"id": 1}'
    headers = _headers(body)
    headers.pop("X-Shopify-Hmac-Sha256")

    resp = client.post("/webhooks/shopify", content=body, headers=headers)

    assert resp.status_code == 401
    assert calls == []


def test_signature_over_different_body_is_rejected(client, calls):
    signed = b'{"id": 1}'
    sent = b'{"id": 2}'

    resp = client.post("/webhooks/shopify", content=sent, headers=_headers(signed))

    assert resp.status_code == 401
    assert calls == []


# ---------- 正常分发 ----------
def test_valid_signature_dispatches_by_header_topic(client, calls):
    body = json.dumps({"id": 111, "title": "Blue Hat"}).encode()

    resp = client.post("/webhooks/shopify/products/update", content=body, headers=_headers(body))

    assert resp.status_code == 200
    data = resp.json()
    assert data["ok"] is True
    assert data["topic"] == "products/update"
    assert calls == [{"topic": "products/update", "shop": "demo.myshopify.com", "payload": {"id": 111, "title": "Blue Hat"}}]


def test_dispatch_runs_outside_the_event_loop(client, monkeypatch):
    seen: List[str] = []

    def fake_dispatch(db, topic, shop_domain, payload):
        try:
            asyncio.get_running_loop()
            seen.append("event_loop")
        except RuntimeError:
            seen.append("worker_thread")
        return {"action": "update", "status": "success"}

    monkeypatch.setattr(webhook_module, "dispatch_webhook", fake_dispatch)
    body = b'{"id": 111}'

    resp = client.post("/webhooks/shopify", content=body, headers=_headers(body))

    assert resp.status_code == 200
    assert seen == ["worker_thread"]


def test_root_endpoint_accepts_any_topic_header(client, calls):
    body = b'{"inventory_item_id": 5, "location_id": 6, "available": 3}'

    resp = client.post("/webhooks/shopify", content=body, headers=_headers(body, topic="inventory_levels/update"))

    assert resp.status_code == 200
    assert calls[0]["topic"] == "inventory_levels/update"


@pytest.mark.parametrize("missing", ["topic", "shop"])
def test_missing_topic_or_shop_header_is_400(client, calls, missing):
    body = b'{"id": 1}'
    kwargs = {missing: None}

    resp = client.post("/webhooks/shopify", content=body, headers=_headers(body, **kwargs))

    assert resp.status_code == 400
    assert calls == []


def test_invalid_json_is_400(client, calls):
    body = b"not-json"

    resp = client.post("/webhooks/shopify", content=body, headers=_headers(body))

    assert resp.status_code == 400
    assert calls == []


def test_processor_not_found_maps_to_404_and_rolls_back(client, db, monkeypatch):
    def fake_dispatch(db, topic, shop_domain, payload):
        raise NotFoundError("product 111 not found for shop demo.myshopify.com")

    monkeypatch.setattr(webhook_module, "dispatch_webhook", fake_dispatch)
    body = b'{"id": 111}'

    resp = client.post("/webhooks/shopify", content=body, headers=_headers(body))

    assert resp.status_code == 404
    assert db.rollbacks == 1


# ---------- 未配置 secret：跳过校验 ----------
def test_no_secret_configured_skips_verification(client, calls, monkeypatch):
    monkeypatch.setattr(settings, "SHOPIFY_WEBHOOK_SECRET", None)
    body = b'{"id": 111}'

    resp = client.post("/webhooks/shopify", content=body, headers=_headers(body, signature="AAAA"))

    assert resp.status_code == 200
    assert len(calls) == 1
