# Strength Module - password scoring and replacement recommendations

from .evaluator import (
    SCORE_MAPPING,
    StrengthCategory,
    StrengthEvaluator,
    StrengthFeedback,
    StrengthResult,
    category_for_score,
    score_for_class,
)
from .generator import (
    Recommendation,
    RecommendationGenerator,
    generate_password,
    has_all_character_classes,
)

__all__ = [
    "SCORE_MAPPING",
    "StrengthCategory",
    "StrengthEvaluator",
    "StrengthFeedback",
    "StrengthResult",
    "category_for_score",
    "score_for_class",
    "Recommendation",
    "RecommendationGenerator",
    "generate_password",
    "has_all_character_classes",
]
