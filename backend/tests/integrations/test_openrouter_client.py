from typing import Any, Dict, List

import pytest
import requests

from app.core.config import settings
from app.core.errors import ConfigError, UpstreamError
from app.integrations.llm import DEFAULT_MODEL, OpenRouterClient
from app.services.seo import ProductSnapshot, enhance_product


class FakeResponse:
    def __init__(self, status_code=200, body: Any = None, text: str = ""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeSession:
    def __init__(self, resp) -> None:
        self.resp = resp
        self.calls: List[Dict[str, Any]] = []

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if isinstance(self.resp, Exception):
            raise self.resp
        return self.resp


def _client(resp, **kwargs) -> OpenRouterClient:
    return OpenRouterClient(api_key="sk-or-test", session=FakeSession(resp), **kwargs)


def _ok(content: str) -> FakeResponse:
    return FakeResponse(200, {"choices": [{"message": {"role": "assistant", "content": content}}]})


def test_complete_returns_stripped_content():
    client = _client(_ok("  Better Title \n"))

    assert client.complete("prompt", 50, 0.7) == "Better Title"

    call = client._session.calls[0]
    assert call["url"] == settings.OPENROUTER_BASE_URL
    assert call["headers"]["Authorization"] == "Bearer sk-or-test"
    assert call["json"] == {
        "model": client.model,
        "messages": [{"role": "user", "content": "prompt"}],
        "max_tokens": 50,
        "temperature": 0.7,
    }


def test_model_override_per_call():
    client = _client(_ok("x"), model="base/model")

    client.complete("p", 10, 0.5, model="openai/gpt-4o-mini")

    assert client._session.calls[0]["json"]["model"] == "openai/gpt-4o-mini"


def test_default_model(monkeypatch):
    monkeypatch.setattr(settings, "OPENROUTER_MODEL", None)

    assert _client(_ok("x")).model == DEFAULT_MODEL


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(settings, "OPENROUTER_API_KEY", None)
    client = OpenRouterClient(session=FakeSession(_ok("x")))

    with pytest.raises(ConfigError):
        client.complete("p", 10, 0.5)
    assert client._session.calls == []


@pytest.mark.parametrize("resp", [
    FakeResponse(500, {"error": "oops"}, text="upstream exploded"),
    FakeResponse(200, {"error": {"message": "model overloaded"}}),
    FakeResponse(200, {"choices": []}),
    FakeResponse(200, ValueError("not json"), text="<html>"),
    FakeResponse(200, ["not", "an", "object"]),
    requests.ConnectionError("down"),
])
def test_upstream_failures(resp):
    with pytest.raises(UpstreamError):
        _client(resp).complete("p", 10, 0.5)


def test_error_body_is_truncated():
    with pytest.raises(UpstreamError) as exc:
        _client(FakeResponse(502, None, text="x" * 2000)).complete("p", 10, 0.5)

    assert exc.value.status == 502
    assert len(exc.value.body) == 500


@pytest.mark.parametrize("body", [
    {"choices": ["oops"]},
    {"choices": [None]},
    {"choices": [{"message": "text instead of object"}]},
    {"choices": [{"message": {"content": ["not", "a", "string"]}}]},
    {"choices": {"0": {"message": {"content": "x"}}}},
    {"error": 42},
])
def test_unexpected_response_shape(body):
    with pytest.raises(UpstreamError) as exc:
        _client(FakeResponse(200, body)).complete("p", 10, 0.5)

    assert "unexpected shape" in str(exc.value)


def test_null_content_is_empty_string():
    assert _client(FakeResponse(200, {"choices": [{"message": {"content": None}}]})).complete("p", 10, 0.5) == ""


def test_malformed_reply_falls_back_in_seo_pipeline():
    result = enhance_product(ProductSnapshot(title="Red Scarf"), _client(FakeResponse(200, {"choices": ["oops"]})))

    assert result.source == "fallback"
    assert result.enhancement.seo_title == "Red Scarf"
