from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from app.services.feeds.projection import FeedProduct, format_price
from app.utils.clock import format_db_timestamp, now_utc
from app.utils.serialization import to_jsonable


EXPORT_VERSION = "1.0"
EMPTY_EXPORT = "No products found"
UTF8_BOM = "\ufeff"

# 通用 CSV 表头（csv 与 excel 相同）
CSV_HEADERS = [
    "ID", "External ID", "Title", "Description", "Price", "Currency", "SKU",
    "Brand", "Category", "Images", "Status", "Created At", "Updated At",
]

EXPORT_FORMATS = ("csv", "excel", "xml", "json")

# format -> (media_type, 文件扩展名)
EXPORT_MEDIA_TYPES = {
    "csv": ("text/csv; charset=utf-8", "csv"),
    "excel": ("text/csv; charset=utf-8", "csv"),
    "xml": ("application/xml; charset=utf-8", "xml"),
    "json": ("application/json", "json"),
}


def _quoted(value: Any) -> str:
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def _csv_row(p: FeedProduct) -> str:
    return ",".join([
        p.id,
        p.external_id,
        _quoted(p.title),
        _quoted(p.description),
        format_price(p.price),
        p.currency,
        p.sku,
        _quoted(p.brand),
        _quoted(p.category),
        _quoted("|".join(p.images)),
        p.status,
        format_db_timestamp(p.created_at),
        format_db_timestamp(p.updated_at),
    ])


def export_csv(products: List[FeedProduct]) -> str:
    if not products:
        return EMPTY_EXPORT
    lines = [",".join(CSV_HEADERS)]
    lines.extend(_csv_row(p) for p in products)
    return "\n".join(lines) + "\n"


def export_excel_csv(products: List[FeedProduct]) -> str:
    """和 export_csv 逐字节相同，只多一个 UTF-8 BOM"""
    if not products:
        return EMPTY_EXPORT
    return UTF8_BOM + export_csv(products)


def _cdata(value: str) -> str:
    # "]]>" 会提前结束 CDATA，拆成两段
    return "<![CDATA[" + (value or "").replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _export_timestamp(ts: Optional[datetime]) -> str:
    return (ts or now_utc()).strftime("%Y-%m-%dT%H:%M:%SZ")


def export_xml(products: List[FeedProduct], *, timestamp: Optional[datetime] = None) -> str:
    out: List[str] = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        "<products_export>",
        "  <export_info>",
        f"    <timestamp>{_export_timestamp(timestamp)}</timestamp>",
        f"    <total_products>{len(products)}</total_products>",
        "    <format>xml</format>",
        f"    <version>{EXPORT_VERSION}</version>",
        "  </export_info>",
        "  <products>",
    ]
    for p in products:
        images = "".join(f"<image>{escape(url)}</image>" for url in p.images)
        out.extend([
            "    <product>",
            f"      <id>{escape(p.id)}</id>",
            f"      <external_id>{escape(p.external_id)}</external_id>",
            f"      <title>{_cdata(p.title)}</title>",
            f"      <description>{_cdata(p.description)}</description>",
            f"      <price>{format_price(p.price)}</price>",
            f"      <currency>{escape(p.currency)}</currency>",
            f"      <sku>{escape(p.sku)}</sku>",
            f"      <brand>{_cdata(p.brand)}</brand>",
            f"      <category>{_cdata(p.category)}</category>",
            f"      <images>{images}</images>",
            f"      <status>{escape(p.status)}</status>",
            f"      <created_at>{format_db_timestamp(p.created_at)}</created_at>",
            f"      <updated_at>{format_db_timestamp(p.updated_at)}</updated_at>",
            "    </product>",
        ])
    out.extend(["  </products>", "</products_export>"])
    return "\n".join(out) + "\n"


def _json_product(p: FeedProduct) -> Dict[str, Any]:
    return {
        "id": p.id,
        "external_id": p.external_id,
        "title": p.title,
        "description": p.description,
        "price": p.price,
        "compare_at_price": p.compare_at_price,
        "currency": p.currency,
        "sku": p.sku,
        "gtin": p.gtin,
        "brand": p.brand,
        "category": p.category,
        "images": list(p.images),
        "variants": list(p.variants),
        "custom_labels": list(p.custom_labels),
        "status": p.status,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }


def export_json(products: List[FeedProduct], *, timestamp: Optional[datetime] = None) -> str:
    doc = {
        "export_info": {
            "timestamp": _export_timestamp(timestamp),
            "total_products": len(products),
            "format": "json",
            "version": EXPORT_VERSION,
        },
        "products": [_json_product(p) for p in products],
    }
    return json.dumps(to_jsonable(doc), ensure_ascii=False, indent=2)


def render_export(fmt: str, products: List[FeedProduct], *, timestamp: Optional[datetime] = None) -> str:
    key = (fmt or "csv").strip().lower()
    if key == "csv":
        return export_csv(products)
    if key == "excel":
        return export_excel_csv(products)
    if key == "xml":
        return export_xml(products, timestamp=timestamp)
    if key == "json":
        return export_json(products, timestamp=timestamp)
    raise ValueError(f"unsupported export format: {fmt}")
