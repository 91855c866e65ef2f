from .enhancement import SEOEnhancement, ProductSnapshot
from .fallback import build_fallback_enhancement
from .scoring import calculate_seo_score
from .prompts import SEOOptions, build_seo_prompt, OPTIMIZATION_TYPES
from .pipeline import SEOResult, enhance_product, enhance_with_fallback, parse_llm_enhancement, strip_code_fences

__all__ = [
    "SEOEnhancement", "ProductSnapshot", "SEOOptions", "SEOResult", "OPTIMIZATION_TYPES",
    "build_fallback_enhancement", "calculate_seo_score", "build_seo_prompt",
    "enhance_product", "enhance_with_fallback", "parse_llm_enhancement", "strip_code_fences",
]
