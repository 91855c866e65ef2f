from .optimizer_service import (
    OptimizationResult,
    apply_optimization,
    enhance_description,
    optimize_images,
    optimize_title,
    parse_category_suggestions,
    suggest_category,
)
from .rules import analyze_images, image_quality_score, optimize_title_with_rules, suggest_category_with_rules, truncate_title
from .scoring import description_score, improvement_percentage, title_score

__all__ = [
    "OptimizationResult", "apply_optimization", "enhance_description", "optimize_images",
    "optimize_title", "parse_category_suggestions", "suggest_category",
    "analyze_images", "image_quality_score", "optimize_title_with_rules",
    "suggest_category_with_rules", "truncate_title",
    "description_score", "improvement_percentage", "title_score",
]
