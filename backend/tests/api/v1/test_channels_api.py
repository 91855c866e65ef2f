import uuid
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.v1 import channels as channels_module
from app.api.v1.channels import router as channels_router
from app.core.errors import UpstreamError
from app.db.session import get_db


def _channel(**overrides) -> SimpleNamespace:
    data = dict(
        id=uuid.uuid4(), name="GMC", type="GOOGLE_MERCHANT_CENTER", config={},
        credentials={"apiKey": "k", "secret": "s", "merchantId": ""}, status="ACTIVE",
        last_sync=None, created_at=None, updated_at=None,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest.fixture()
def client(db) -> TestClient:
    app = FastAPI()
    app.include_router(channels_router)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture()
def stored(monkeypatch) -> SimpleNamespace:
    channel = _channel()
    monkeypatch.setattr(channels_module, "get_channel", lambda db, cid: channel if cid == str(channel.id) else None)
    return channel


def test_available_lists_five_channel_types(client):
    resp = client.get("/channels/available")

    assert resp.status_code == 200
    body = resp.json()
    assert [c["type"] for c in body] == [
        "GOOGLE_MERCHANT_CENTER", "BING_SHOPPING", "META_CATALOG", "PINTEREST_CATALOG", "TIKTOK_SHOPPING",
    ]
    assert {c["status"] for c in body} == {"available"}


def test_connected_only_asks_for_active(client, monkeypatch):
    calls: List[Dict[str, Any]] = []

    def fake_list(db, *, only_active=False):
        calls.append({"only_active": only_active})
        return [_channel()]

    monkeypatch.setattr(channels_module, "list_channels", fake_list)

    resp = client.get("/channels/connected")

    assert resp.status_code == 200
    assert calls == [{"only_active": True}]
    # 凭据值不回显
    assert resp.json()[0]["credential_keys"] == ["apiKey", "secret"]
    assert "credentials" not in resp.json()[0]


def test_get_channel_404(client, stored):
    assert client.get(f"/channels/{uuid.uuid4()}").status_code == 404
    assert client.get(f"/channels/{stored.id}").json()["name"] == "GMC"


def test_create_channel_commits(client, db, monkeypatch):
    seen: Dict[str, Any] = {}

    def fake_create(db, **kwargs):
        seen.update(kwargs)
        return _channel(name=kwargs["name"], type=kwargs["type"])

    monkeypatch.setattr(channels_module, "create_channel", fake_create)

    resp = client.post("/channels", json={"name": "Pins", "type": "PINTEREST_CATALOG"})

    assert resp.status_code == 201
    assert resp.json()["type"] == "PINTEREST_CATALOG"
    assert seen["status"] == "ACTIVE"
    assert db.commits == 1


def test_create_channel_rejects_unknown_type(client, db):
    resp = client.post("/channels", json={"name": "X", "type": "AMAZON"})

    assert resp.status_code == 422
    assert db.commits == 0


def test_connect_stores_settings_in_config(client, db, monkeypatch):
    seen: Dict[str, Any] = {}

    def fake_connect(db, **kwargs):
        seen.update(kwargs)
        return _channel(name=kwargs["name"], type=kwargs["type"], config=kwargs["config"],
                        credentials=kwargs["credentials"])

    monkeypatch.setattr(channels_module, "connect_channel", fake_connect)

    resp = client.post("/channels/connect", json={
        "name": "Meta", "type": "META_CATALOG", "description": "FB shop", "connector_id": "c1",
        "credentials": {"apiKey": "k", "secret": "s"},
        "settings": {"autoSync": True, "syncInterval": 30},
    })

    assert resp.status_code == 200
    assert seen["channel_id"] is None
    assert seen["config"] == {
        "description": "FB shop", "autoSync": True, "syncInterval": 30, "testMode": False, "connector_id": "c1",
    }
    assert seen["credentials"] == {"apiKey": "k", "secret": "s", "merchantId": ""}
    assert db.commits == 1


def test_update_only_passes_given_fields(client, db, stored, monkeypatch):
    seen: Dict[str, Any] = {}

    def fake_update(db, channel, values):
        seen.update(values)
        channel.status = values["status"] or channel.status
        return channel

    monkeypatch.setattr(channels_module, "update_channel", fake_update)

    resp = client.put(f"/channels/{stored.id}", json={"status": "INACTIVE"})

    assert resp.status_code == 200
    assert resp.json()["status"] == "INACTIVE"
    assert seen["name"] is None
    assert db.commits == 1


def test_delete_channel(client, db, monkeypatch):
    monkeypatch.setattr(channels_module, "delete_channel", lambda db, cid: 1 if cid == "known" else 0)

    assert client.delete("/channels/known").status_code == 204
    assert client.delete("/channels/missing").status_code == 404
    assert db.commits == 1


def test_test_endpoint_checks_credentials(client, stored):
    assert client.post(f"/channels/{stored.id}/test").json()["status"] == "ok"

    stored.credentials = {"apiKey": "k"}
    resp = client.post(f"/channels/{stored.id}/test")

    assert resp.status_code == 400
    assert "secret" in resp.json()["detail"]


def test_sync_commits_result(client, db, stored, monkeypatch):
    monkeypatch.setattr(channels_module, "sync_channel", lambda db, channel: {"status": "completed", "items": 3})

    resp = client.post(f"/channels/{stored.id}/sync")

    assert resp.status_code == 200
    assert resp.json() == {"status": "completed", "items": 3}
    assert db.commits == 1


def test_sync_error_rolls_back(client, db, stored, monkeypatch):
    def boom(db, channel):
        raise UpstreamError("feed failed", status=502)

    monkeypatch.setattr(channels_module, "sync_channel", boom)

    resp = client.post(f"/channels/{stored.id}/sync")

    assert resp.status_code >= 500
    assert db.rollbacks == 1
    assert db.commits == 0


def test_sync_unknown_channel_404(client, stored):
    assert client.post(f"/channels/{uuid.uuid4()}/sync").status_code == 404
