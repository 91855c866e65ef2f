# 测试公共件：假 Session + 行对象工厂
# 单元测试不连数据库；仓储函数在被测模块的命名空间上 monkeypatch

from __future__ import annotations
import uuid
from types import SimpleNamespace
from typing import Any, Dict

import pytest


class DummySession:
    """只记录 commit / rollback 次数的假 Session"""

    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        pass


def _make_product(**overrides: Any) -> SimpleNamespace:
    """模拟 ORM Product 行（metadata 属性叫 meta）"""
    data: Dict[str, Any] = dict(
        id=uuid.uuid4(),
        connector_id="c1",
        external_id="111",
        title="Blue Hat",
        description="",
        price=None,
        compare_at_price=None,
        currency="USD",
        sku="BH-1",
        gtin=None,
        brand="Acme",
        category="Hats",
        images=[],
        variants=[],
        custom_labels=[],
        meta={},
        status="ACTIVE",
        created_at=None,
        updated_at=None,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def _make_connector(**overrides: Any) -> SimpleNamespace:
    data: Dict[str, Any] = dict(
        id="c1",
        name="Demo",
        type="shopify",
        status="ACTIVE",
        shop_domain="demo.myshopify.com",
        access_token="shpat_test",
        created_at=None,
        last_sync=None,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


class _FakeLLM:
    """按顺序返回预置文本；元素是异常时直接抛出"""

    def __init__(self, *replies: Any, model: str = "test/model") -> None:
        self.replies = list(replies)
        self.model = model
        self.prompts = []

    def complete(self, prompt, max_tokens, temperature, *, model=None):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture()
def db() -> DummySession:
    return DummySession()


@pytest.fixture()
def make_product():
    return _make_product


@pytest.fixture()
def make_connector():
    return _make_connector


@pytest.fixture()
def fake_llm():
    return _FakeLLM
