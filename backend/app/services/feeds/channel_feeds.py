"""
渠道 feed：
  - Google Shopping：RSS 2.0 + g: 命名空间，只输出 ACTIVE 且 price > 0 的商品；
  - Facebook / Instagram：固定表头 CSV。
输出只取决于输入列表（顺序不变），同样输入得到同样字节。
"""

from __future__ import annotations
import csv
import io
import xml.etree.ElementTree as ET
from typing import Iterable, List

from app.services.feeds.projection import FeedProduct, format_price


GOOGLE_NS = "http://base.google.com/ns/1.0"
ET.register_namespace("g", GOOGLE_NS)

FEED_TITLE = "Product Feed"
FEED_DESCRIPTION = "Product catalog feed"

FACEBOOK_HEADERS = [
    "id", "name", "description", "price", "sku", "brand",
    "category", "image_url", "availability", "condition", "url",
]


def _g(tag: str) -> str:
    return f"{{{GOOGLE_NS}}}{tag}"


def _sub(parent: ET.Element, tag: str, text: str) -> ET.Element:
    el = ET.SubElement(parent, tag)
    el.text = text
    return el


def _price_text(p: FeedProduct) -> str:
    return f"{format_price(p.price)} {p.currency}"


# ========== Google Shopping ==========
def google_feed_items(products: Iterable[FeedProduct]) -> List[FeedProduct]:
    return [p for p in products if p.is_active and p.has_price]


def build_google_feed(products: Iterable[FeedProduct], *, link: str = "", title: str = FEED_TITLE) -> bytes:
    """<rss version="2.0" xmlns:g="http://base.google.com/ns/1.0"> ... 的 UTF-8 字节"""
    rss = ET.Element("rss", {"version": "2.0"})
    channel = ET.SubElement(rss, "channel")
    _sub(channel, "title", title)
    _sub(channel, "link", link)
    _sub(channel, "description", FEED_DESCRIPTION)

    for p in google_feed_items(products):
        item = ET.SubElement(channel, "item")
        _sub(item, _g("id"), p.external_id)
        _sub(item, _g("title"), p.title)
        _sub(item, _g("description"), p.description)
        _sub(item, _g("price"), _price_text(p))
        _sub(item, _g("brand"), p.brand)
        _sub(item, _g("condition"), "new")
        _sub(item, _g("availability"), "in stock")
        _sub(item, _g("image_link"), p.first_image)
        _sub(item, _g("product_type"), p.category)

    # g: 前缀的 xmlns 声明会落在 <rss> 上（没有 item 时也保留）
    if not len(channel.findall("item")):
        rss.set("xmlns:g", GOOGLE_NS)
    ET.indent(rss, space="  ")
    return ET.tostring(rss, encoding="utf-8", xml_declaration=True)


# ========== Facebook / Instagram ==========
def build_facebook_csv(products: Iterable[FeedProduct]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(FACEBOOK_HEADERS)
    for p in products:
        writer.writerow([
            p.external_id,
            p.title,
            p.description,
            _price_text(p) if p.price is not None else "",
            p.sku,
            p.brand,
            p.category,
            p.first_image,
            "in stock",
            "new",
            p.product_url,
        ])
    return buf.getvalue()
