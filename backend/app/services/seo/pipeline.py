"""
SEO 增强流水线：prompt -> LLM -> 宽松解析；任何失败都降级到规则兜底。
自动同步路径只走 build_fallback_enhancement，不调用 LLM。
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from app.core.errors import ListingError
from app.services.seo.enhancement import ProductSnapshot, SEOEnhancement
from app.services.seo.fallback import build_fallback_enhancement
from app.services.seo.prompts import SEOOptions, build_seo_prompt
from app.services.seo.scoring import calculate_seo_score

logger = logging.getLogger(__name__)


SEO_MAX_TOKENS = 500
SEO_TEMPERATURE = 0.7


class CompletionClient(Protocol):
    def complete(self, prompt: str, max_tokens: int, temperature: float, *, model: Optional[str] = None) -> str: ...


@dataclass
class SEOResult:
    enhancement: SEOEnhancement
    score: int
    source: str                    # "ai" | "fallback"
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enhancement": self.enhancement.to_dict(),
            "score": self.score,
            "source": self.source,
            "error": self.error,
        }


def strip_code_fences(text: str) -> str:
    """去掉 ```json ... ``` / ``` ... ``` 包裹，再 strip"""
    cleaned = (text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json"):]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```"):]
    else:
        return cleaned
    if cleaned.rstrip().endswith("```"):
        cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def _coerce_schema_markup(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return ""


def _coerce_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_llm_enhancement(text: str) -> SEOEnhancement:
    """
    宽松解析 LLM 输出；JSON 解不出来（或不是对象）抛 ValueError。
    """
    cleaned = strip_code_fences(text)
    try:
        raw = json.loads(cleaned)
    except ValueError as e:
        logger.warning("seo.llm.parse_error payload=%r", cleaned[:200])
        raise ValueError(f"LLM output is not JSON: {e}") from e
    if not isinstance(raw, dict):
        logger.warning("seo.llm.parse_error payload=%r", cleaned[:200])
        raise ValueError("LLM output is not a JSON object")

    keywords = raw.get("keywords")
    return SEOEnhancement(
        seo_title=_coerce_str(raw.get("seo_title")),
        seo_description=_coerce_str(raw.get("seo_description")),
        keywords=[k for k in keywords if isinstance(k, str)] if isinstance(keywords, list) else [],
        meta_keywords=_coerce_str(raw.get("meta_keywords")),
        alt_text=_coerce_str(raw.get("alt_text")),
        schema_markup=_coerce_schema_markup(raw.get("schema_markup")),
    )


def enhance_with_fallback(snapshot: ProductSnapshot) -> SEOResult:
    enhancement = build_fallback_enhancement(snapshot)
    return SEOResult(enhancement=enhancement, score=calculate_seo_score(enhancement), source="fallback")


def enhance_product(
    snapshot: ProductSnapshot,
    llm: Optional[CompletionClient],
    options: Optional[SEOOptions] = None,
) -> SEOResult:
    """批量 / 显式增强入口：LLM 失败静默降级"""
    options = options or SEOOptions()
    if llm is None:
        return enhance_with_fallback(snapshot)

    prompt = build_seo_prompt(snapshot, options)
    try:
        text = llm.complete(prompt, SEO_MAX_TOKENS, SEO_TEMPERATURE, model=options.ai_model or None)
        enhancement = parse_llm_enhancement(text)
    except (ListingError, ValueError) as e:
        logger.info("seo.fallback title=%r reason=%s", snapshot.title[:60], e)
        result = enhance_with_fallback(snapshot)
        result.error = str(e)
        return result

    return SEOResult(enhancement=enhancement, score=calculate_seo_score(enhancement), source="ai")
