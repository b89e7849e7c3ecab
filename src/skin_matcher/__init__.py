"""Skin Matcher - quiz-driven skincare product recommendations."""

from .engine import RecommendationEngine
from .qualifier import ShortlistSelector, select_shortlist
from .quiz import QuizSession
from .schema import ProductRecord, QuestionnaireAnswers, RecommendationResult, ScoredProduct
from .scorer import ProductScorer, score_product

__all__ = [
    "ProductRecord",
    "ProductScorer",
    "QuestionnaireAnswers",
    "QuizSession",
    "RecommendationEngine",
    "RecommendationResult",
    "ScoredProduct",
    "ShortlistSelector",
    "score_product",
    "select_shortlist",
]

__version__ = "1.0.0"
