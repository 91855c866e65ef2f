from __future__ import annotations

from app.services.seo.enhancement import SEOEnhancement


def calculate_seo_score(enhancement: SEOEnhancement) -> int:
    """0~100 的 SEO 分；对外展示的 "SEO score" 只用这一个函数算"""
    score = 0

    title_len = len(enhancement.seo_title or "")
    if 30 <= title_len <= 60:
        score += 25
    elif title_len > 0:
        score += 15

    desc_len = len(enhancement.seo_description or "")
    if 120 <= desc_len <= 160:
        score += 25
    elif desc_len >= 50:
        score += 18
    elif desc_len > 0:
        score += 10

    kw_count = len(enhancement.keywords or [])
    if 5 <= kw_count <= 10:
        score += 20
    elif kw_count >= 3:
        score += 15
    elif kw_count >= 1:
        score += 8

    alt_len = len(enhancement.alt_text or "")
    if alt_len >= 20:
        score += 10
    elif alt_len > 0:
        score += 5

    schema = enhancement.schema_markup or ""
    if "@context" in schema and "@type" in schema:
        score += 15
    elif schema:
        score += 8

    if enhancement.meta_keywords:
        score += 5

    return max(0, min(100, score))
