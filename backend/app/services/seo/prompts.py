"""SEO prompt 模板"""

from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Optional

from app.services.seo.enhancement import ProductSnapshot


OPTIMIZATION_TYPES = ("title", "description", "category", "tags", "seo", "all")

LANGUAGE_INSTRUCTIONS = {
    "en": "in English",
    "es": "in Spanish (Español)",
    "fr": "in French (Français)",
    "de": "in German (Deutsch)",
}

AUDIENCE_INSTRUCTIONS = {
    "general": "general audience",
    "professionals": "professional audience (business-focused, technical terms are OK)",
    "students": "students and young adults (clear, educational tone)",
    "families": "families and parents (warm, family-friendly tone)",
}

LEVEL_INSTRUCTIONS = {
    "conservative": "Make minimal changes, preserve the original tone and style. Only fix obvious issues.",
    "balanced": "Balance between keeping the original style and adding improvements. Moderate SEO optimization.",
    "aggressive": "Maximize SEO potential. Rewrite completely for best search visibility and conversion.",
}

FOCUS_INSTRUCTIONS = {
    "title": "Focus ONLY on optimizing the SEO title. Keep description and other fields minimal.",
    "description": "Focus ONLY on optimizing the SEO description. Keep title and other fields minimal.",
    "category": "Focus on improving category classification and keywords.",
    "tags": "Focus on generating comprehensive, relevant keywords and tags.",
    "seo": "Focus on technical SEO elements: schema markup, meta tags, alt text.",
    "all": "Optimize all aspects: title, description, keywords, and technical SEO.",
}

_SCHEMA_EXAMPLE = (
    '"{\\"@context\\":\\"https://schema.org\\",\\"@type\\":\\"Product\\",\\"name\\":\\"Product Name\\",'
    '\\"description\\":\\"Description\\",\\"brand\\":{\\"@type\\":\\"Brand\\",\\"name\\":\\"Brand\\"}}"'
)


@dataclass(frozen=True)
class SEOOptions:
    optimization_type: str = "all"
    ai_model: Optional[str] = None
    language: str = "en"
    audience: str = "general"
    optimization_level: str = "balanced"
    custom_instructions: str = ""


def build_seo_prompt(snapshot: ProductSnapshot, options: Optional[SEOOptions] = None) -> str:
    options = options or SEOOptions()
    lang = LANGUAGE_INSTRUCTIONS.get(options.language or "en", LANGUAGE_INSTRUCTIONS["en"])
    audience = AUDIENCE_INSTRUCTIONS.get(options.audience or "general", AUDIENCE_INSTRUCTIONS["general"])
    level = LEVEL_INSTRUCTIONS.get(options.optimization_level or "balanced", LEVEL_INSTRUCTIONS["balanced"])
    focus = FOCUS_INSTRUCTIONS.get(options.optimization_type or "all", FOCUS_INSTRUCTIONS["all"])

    product_json = json.dumps(
        {
            "title": snapshot.title,
            "description": snapshot.description,
            "product_type": snapshot.category,
            "vendor": snapshot.brand,
            "price": snapshot.price,
            "sku": snapshot.sku,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )

    custom = ""
    if options.custom_instructions:
        custom = (
            "\n\nIMPORTANT CUSTOM INSTRUCTIONS FROM USER:\n"
            f"{options.custom_instructions}\n\n"
            "Follow these custom instructions carefully."
        )

    return f"""You are an expert e-commerce SEO specialist. Analyze this product and provide comprehensive SEO optimization {lang}.

Product data: {product_json}

TARGET LANGUAGE: {lang}
TARGET AUDIENCE: {audience}
OPTIMIZATION LEVEL: {level}
FOCUS: {focus}
{custom}

Provide a JSON response with the following structure:
{{
  "seo_title": "Optimized title under 60 characters",
  "seo_description": "Meta description under 160 characters",
  "keywords": ["keyword1", "keyword2", "keyword3"],
  "meta_keywords": "keyword1, keyword2, keyword3",
  "alt_text": "Descriptive alt text for product images",
  "schema_markup": {_SCHEMA_EXAMPLE}
}}

CRITICAL REQUIREMENTS:
- SEO title: Under 60 characters, keyword-rich, compelling, written {lang}
- SEO description: Under 160 characters, persuasive, includes CTA, written {lang} for {audience}
- Keywords: 5-10 relevant keywords from title, category, brand
- Alt text: Descriptive, includes product name and key features
- Schema markup: MUST be a JSON STRING (escaped JSON), NOT a JSON object. See example above.

Return ONLY the JSON response, no markdown code blocks, no explanations.
"""
