"""Shared fixtures for the skin matcher tests."""

import pytest

from skin_matcher.config import reset_config
from skin_matcher.schema import ProductRecord, QuestionnaireAnswers, ScoredProduct


def make_product(**overrides) -> ProductRecord:
    """Build a product with neutral text that triggers no keyword rule."""
    base = {
        "id": "p-1",
        "title": "Plain Product",
        "description": "",
        "short_description": "",
        "tags": [],
        "category": "teas",
        "price": 200,
        "slug": "plain-product",
        "images": ["/img/plain.jpg"],
        "in_stock": True,
        "inventory": 5,
    }
    base.update(overrides)
    return ProductRecord.model_validate(base)


def make_answers(**overrides) -> QuestionnaireAnswers:
    """Build answers that trigger as few rules as possible by default."""
    base = {
        "age_bracket": "18-25",
        "gender": "female",
        "skin_type": "combination",
        "concerns": ["pores"],
        "budget_tier": "budget",
        "lifestyle": "busy",
    }
    base.update(overrides)
    return QuestionnaireAnswers(**base)


def make_scored(product_id: str, category: str, score: int) -> ScoredProduct:
    return ScoredProduct(
        product=make_product(id=product_id, title=f"Product {product_id}", category=category),
        score=score,
        reasons=[f"reason for {product_id}"],
    )


@pytest.fixture(autouse=True)
def _default_config():
    """Every test starts from the default engine configuration."""
    reset_config()
    yield
    reset_config()
