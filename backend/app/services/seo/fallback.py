"""规则兜底：纯函数，同一商品输入得到逐字节相同的增强记录"""

from __future__ import annotations
import json
from typing import List

from app.services.seo.enhancement import ProductSnapshot, SEOEnhancement


TITLE_LIMIT = 60
DESCRIPTION_LIMIT = 160


def _truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


def _keywords(snapshot: ProductSnapshot) -> List[str]:
    keywords = [
        snapshot.title.lower(),
        snapshot.category.lower(),
        snapshot.brand.lower(),
        "online shopping",
        "buy online",
    ]
    # 固定五项（空字段也占位，关键词个数参与打分），有分类才追加 "xxx for sale"
    if snapshot.category:
        keywords.append(f"{snapshot.category.lower()} for sale")
    return keywords


def build_schema_markup(name: str, description: str, brand: str, category: str) -> str:
    doc = {
        "@context": "https://schema.org",
        "@type": "Product",
        "name": name,
        "description": description,
        "brand": {"@type": "Brand", "name": brand},
        "category": category,
    }
    return json.dumps(doc, ensure_ascii=False, separators=(",", ":"))


def build_fallback_enhancement(snapshot: ProductSnapshot) -> SEOEnhancement:
    title = snapshot.title
    description = snapshot.description
    if description:
        seo_description = _truncate(description, DESCRIPTION_LIMIT)
    else:
        seo_description = (
            f"Shop {title} online. High-quality {snapshot.category} from {snapshot.brand}. "
            "Fast shipping and great customer service."
        )

    keywords = _keywords(snapshot)
    return SEOEnhancement(
        seo_title=_truncate(title, TITLE_LIMIT),
        seo_description=seo_description,
        keywords=keywords,
        meta_keywords=", ".join(keywords),
        alt_text=f"{title} - {snapshot.category} product from {snapshot.brand}",
        schema_markup=build_schema_markup(title, description, snapshot.brand, snapshot.category),
    )
