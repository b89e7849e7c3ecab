"""Tests for the recommendation engine pipeline."""

import asyncio

import pytest

from conftest import make_answers, make_product
from skin_matcher.catalog import CatalogLoadError, InMemoryCatalogProvider
from skin_matcher.config import EngineConfig, SelectionConfig
from skin_matcher.engine import RecommendationEngine


def _catalog():
    return [
        make_product(id="soap", title="Charcoal Soap", category="soaps",
                     description="purifying charcoal bar", price=8),
        make_product(id="gel", title="Mattifying Gel", category="lotions",
                     description="lightweight oil-free gel", price=22),
        make_product(id="tea", title="Green Tea", category="teas"),
        make_product(id="oil", title="Rosehip Oil", category="oils",
                     description="brightening facial oil", price=35),
    ]


class FailingProvider:
    async def fetch_all(self):
        raise CatalogLoadError("catalog offline")


class TestRecommendationEngine:
    """Tests for RecommendationEngine.recommend."""

    def test_recommends_qualified_products(self):
        answers = make_answers(skin_type="oily", concerns=["dark_spots"])
        result = RecommendationEngine().recommend(_catalog(), answers)

        # soap: 3 + 1 affinity + 2 budget, gel: 5 + 2 budget, oil: 4
        assert [p.product.id for p in result.recommendations] == ["gel", "soap", "oil"]
        assert result.recommendations[0].score == 7
        assert not result.used_relaxed_threshold
        assert not result.used_catalog_fallback
        assert result.answers == answers
        assert result.timestamp > 0

    def test_falls_back_to_catalog_head_when_nothing_scores(self):
        products = [make_product(id=f"t{i}", title=f"Tea {i}") for i in range(5)]
        result = RecommendationEngine().recommend(products, make_answers())

        assert [p.product.id for p in result.recommendations] == ["t0", "t1", "t2"]
        assert all(p.score == 0 for p in result.recommendations)
        assert result.used_catalog_fallback

    def test_non_empty_whenever_catalog_non_empty(self):
        result = RecommendationEngine().recommend([make_product()], make_answers())
        assert len(result.recommendations) == 1

    def test_empty_catalog_gives_empty_result(self):
        result = RecommendationEngine().recommend([], make_answers())
        assert result.recommendations == []
        assert not result.used_catalog_fallback

    def test_target_count_from_config(self):
        config = EngineConfig(selection=SelectionConfig(target_count=2))
        answers = make_answers(skin_type="oily", concerns=["dark_spots"])
        result = RecommendationEngine(config=config).recommend(_catalog(), answers)
        assert len(result.recommendations) == 2

    def test_zero_target_count_rejected(self):
        with pytest.raises(ValueError, match="target_count"):
            RecommendationEngine().recommend(_catalog(), make_answers(), target_count=0)

    def test_explicit_target_count_overrides_config(self):
        answers = make_answers(skin_type="oily", concerns=["dark_spots"])
        result = RecommendationEngine().recommend(_catalog(), answers, target_count=1)
        assert [p.product.id for p in result.recommendations] == ["gel"]

    def test_reports_relaxed_threshold(self):
        products = [
            make_product(id="a", title="A", category="soaps", description="mild bar"),
            make_product(id="b", title="B", category="oils", description="gentle oil"),
        ]
        result = RecommendationEngine().recommend(products, make_answers())
        assert result.used_relaxed_threshold
        # age and combination-skin weak tiers only
        assert [p.score for p in result.recommendations] == [4, 4]

    def test_recommend_from_provider(self):
        provider = InMemoryCatalogProvider(_catalog())
        answers = make_answers(skin_type="oily", concerns=["dark_spots"])
        result = asyncio.run(RecommendationEngine().recommend_from(provider, answers))
        assert len(result.recommendations) == 3

    def test_recommend_from_propagates_catalog_errors(self):
        with pytest.raises(CatalogLoadError, match="offline"):
            asyncio.run(RecommendationEngine().recommend_from(FailingProvider(), make_answers()))
