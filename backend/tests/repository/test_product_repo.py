import math
import uuid
from contextlib import nullcontext
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import ProgrammingError

from app.core.errors import ConstraintMissingError
from app.repository import product_repo as repo


class RecordingSession:
    """记录 execute 收到的语句；error 非空时 execute 直接抛"""

    def __init__(self, result=None, error=None) -> None:
        self.statements = []
        self.result = result
        self.error = error
        self.savepoints = 0

    def begin_nested(self):
        self.savepoints += 1
        return nullcontext()

    def execute(self, stmt, params=None):
        self.statements.append(stmt)
        if self.error is not None:
            raise self.error
        return self.result


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def test_upsert_targets_connector_and_external_id():
    pid = uuid.uuid4()
    db = RecordingSession(result=SimpleNamespace(scalar_one=lambda: pid))

    got = repo.upsert_product(db, {"connector_id": "c1", "external_id": "111", "title": "Blue Hat", "metadata": {}})

    assert got == pid
    assert db.savepoints == 1
    sql = _sql(db.statements[0])
    assert "ON CONFLICT (connector_id, external_id) DO UPDATE" in sql
    assert "title = excluded.title" in sql
    assert "metadata = excluded.metadata" in sql
    # 冲突键本身不覆盖
    assert "external_id = excluded.external_id" not in sql


def test_upsert_missing_constraint_is_translated():
    err = ProgrammingError(
        "INSERT ...", {}, Exception("there is no unique or exclusion constraint matching the ON CONFLICT specification")
    )
    db = RecordingSession(error=err)

    with pytest.raises(ConstraintMissingError):
        repo.upsert_product(db, {"connector_id": "c1", "external_id": "111"})


def test_upsert_other_programming_errors_propagate():
    db = RecordingSession(error=ProgrammingError("INSERT ...", {}, Exception('column "gtin" does not exist')))

    with pytest.raises(ProgrammingError):
        repo.upsert_product(db, {"connector_id": "c1", "external_id": "111"})


def test_clean_row_values_drops_non_finite_numbers():
    clean = repo._clean_row_values({"price": Decimal("NaN"), "compare_at_price": math.inf, "title": "x"})

    assert clean == {"price": None, "compare_at_price": None, "title": "x"}


def test_update_product_column_whitelist():
    with pytest.raises(ValueError):
        repo.update_product_column(RecordingSession(), uuid.uuid4(), "price", "1")


def test_merge_product_metadata_is_shallow(monkeypatch):
    writes = []
    monkeypatch.setattr(repo, "update_product_fields", lambda db, pid, values: writes.append((pid, values)) or 1)
    product = SimpleNamespace(id="p1", meta={"seo_title": "Old", "handle": "blue-hat"})

    repo.merge_product_metadata(None, product, {"seo_title": "New"})

    assert writes == [("p1", {"metadata": {"seo_title": "New", "handle": "blue-hat"}})]
    assert product.meta == {"seo_title": "Old", "handle": "blue-hat"}


def test_get_product_with_malformed_id_returns_none():
    db = RecordingSession()

    assert repo.get_product(db, "not-a-uuid") is None
    assert db.statements == []


def test_product_to_dict_uses_column_names(make_product):
    row = make_product(meta={"handle": "blue-hat"}, images=("https://x/1.jpg",))

    data = repo.product_to_dict(row)

    assert data["metadata"] == {"handle": "blue-hat"}
    assert "meta" not in data
    assert data["images"] == ["https://x/1.jpg"]
    assert data["id"] == str(row.id)
