from decimal import Decimal

import pytest

from app.services.channels import (
    GOOGLE_MERCHANT_CENTER,
    META_CATALOG,
    PINTEREST_CATALOG,
    check_listing,
)
from app.services.feeds import FeedProduct


def _product(**overrides) -> FeedProduct:
    data = dict(
        id="p1", external_id="111", title="Blue Hat", description="Warm wool hat",
        price=Decimal("19.99"), brand="Acme", category="Hats",
        images=["https://x/1.jpg"], status="ACTIVE",
    )
    data.update(overrides)
    return FeedProduct(**data)


def _codes(channel, product):
    return [p.code for p in check_listing(channel, product)]


def test_complete_product_has_no_problems():
    assert check_listing(GOOGLE_MERCHANT_CENTER, _product()) == []


def test_problems_come_out_in_fixed_order():
    bare = _product(title="", price=None, images=[], description="", brand="")

    assert _codes(GOOGLE_MERCHANT_CENTER, bare) == [
        "MISSING_TITLE", "MISSING_PRICE", "MISSING_IMAGE", "MISSING_DESCRIPTION", "MISSING_BRAND",
    ]


@pytest.mark.parametrize("price", [None, Decimal("0"), Decimal("-1")])
def test_price_must_be_positive(price):
    problems = check_listing(META_CATALOG, _product(price=price))

    assert [p.code for p in problems] == ["MISSING_PRICE"]
    assert problems[0].severity == "HIGH"


def test_relative_image_url_is_flagged():
    problems = check_listing(META_CATALOG, _product(images=["/files/hat.jpg"]))

    assert [p.code for p in problems] == ["INVALID_IMAGE_URL"]
    assert problems[0].details == {"image": "/files/hat.jpg"}


@pytest.mark.parametrize("gtin,ok", [
    ("12345678", True),
    ("012345678905", True),
    ("4006381333931", True),
    ("10012345678902", True),
    ("12345", False),
    ("ABC1234567890", False),
])
def test_gtin_length(gtin, ok):
    codes = _codes(META_CATALOG, _product(gtin=gtin))
    assert ("INVALID_GTIN" not in codes) is ok


def test_title_limit_depends_on_channel():
    long_title = "Hat " * 50   # 200 chars, 199 after strip

    assert _codes(GOOGLE_MERCHANT_CENTER, _product(title=long_title)) == ["TITLE_TOO_LONG"]
    assert _codes(META_CATALOG, _product(title=long_title)) == []
    assert _codes(PINTEREST_CATALOG, _product(title=long_title)) == []


def test_brand_only_required_on_google_and_bing():
    no_brand = _product(brand="")

    assert _codes(GOOGLE_MERCHANT_CENTER, no_brand) == ["MISSING_BRAND"]
    assert _codes("BING_SHOPPING", no_brand) == ["MISSING_BRAND"]
    assert _codes(META_CATALOG, no_brand) == []
