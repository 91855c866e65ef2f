import json
from typing import Any, Dict, List

import pytest

from app.core.errors import UpstreamError
from app.services.seo import product_seo


LLM_JSON = json.dumps({
    "seo_title": "Acme Blue Hat | Warm Wool Beanie",
    "seo_description": "Warm, soft and made to last. Order the Acme Blue Hat today.",
    "keywords": ["blue hat", "wool beanie", "acme"],
    "meta_keywords": "blue hat, wool beanie, acme",
    "alt_text": "Blue wool hat by Acme",
    "schema_markup": "{\"@context\":\"https://schema.org\",\"@type\":\"Product\"}",
})


@pytest.fixture()
def catalog(monkeypatch, make_product):
    rows = {
        "p1": make_product(id="p1", title="Blue Hat", description="", brand="Acme", category="Hats"),
        "p2": make_product(id="p2", title="Silver necklace", description="", brand="Acme", category=""),
    }
    patches: List[Dict[str, Any]] = []

    monkeypatch.setattr(product_seo, "get_product", lambda db, pid: rows.get(str(pid)))

    def fake_merge(db, product, patch):
        patches.append({"id": product.id, **patch})
        product.meta = {**(product.meta or {}), **patch}
        return 1

    monkeypatch.setattr(product_seo, "merge_product_metadata", fake_merge)
    return {"rows": rows, "patches": patches}


def test_enhance_marks_product_as_enhanced(db, catalog, fake_llm):
    out = product_seo.enhance_product_seo(db, "p1", llm=fake_llm(LLM_JSON))

    patch = catalog["patches"][0]
    assert out["source"] == "ai"
    assert out["enhancement"]["seo_title"] == "Acme Blue Hat | Warm Wool Beanie"
    assert patch["seo_enhanced"] is True
    assert patch["seo_enhanced_at"] == out["seo_enhanced_at"] != ""
    assert db.commits == 1


def test_enhance_falls_back_and_still_marks_enhanced(db, catalog, fake_llm):
    out = product_seo.enhance_product_seo(db, "p1", llm=fake_llm(UpstreamError("timeout")))

    assert out["source"] == "fallback"
    assert out["error"] == "timeout"
    assert catalog["patches"][0]["seo_title"] == "Blue Hat"
    assert catalog["patches"][0]["seo_enhanced"] is True


def test_seo_score_reads_metadata(catalog, db, fake_llm):
    product = catalog["rows"]["p1"]
    assert product_seo.product_seo_score(product) == 0

    product_seo.enhance_product_seo(db, "p1", llm=fake_llm(UpstreamError("down")))

    assert product_seo.product_seo_score(product) > 0
    assert product_seo.product_seo_score({"metadata": product.meta}) == product_seo.product_seo_score(product)


def test_bulk_enhance_collects_errors(db, catalog, fake_llm):
    llm = fake_llm(LLM_JSON, UpstreamError("rate limited"))

    out = product_seo.bulk_enhance_products(db, ["p1", "missing", "p2"], llm=llm)

    assert out["status"] == "completed_with_errors"
    assert out["processed"] == 3
    assert out["enhanced"] == 2
    assert out["errors"] == [{"product_id": "missing", "error": "Product not found"}]
    first, second = out["results"]
    assert first["suggested_title"].startswith("Acme Blue Hat")
    assert second["source"] == "fallback"
    assert second["suggested_categories"][0]["category"] == "Jewelry"


def test_bulk_enhance_all_ok(db, catalog, fake_llm):
    out = product_seo.bulk_enhance_products(db, ["p1"], llm=fake_llm(LLM_JSON))

    assert out["status"] == "completed"
    assert out["errors"] == []
