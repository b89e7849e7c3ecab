"""Recommendation Engine - scores the catalog and selects the shortlist.

Pipeline:
1. Score every catalog product against the answers
2. Select a qualified (or relaxed), category-diverse shortlist
3. Fall back to the first catalog products when nothing was selected

The engine is stateless; every call recomputes from scratch.
"""

import logging
from typing import Optional

from .cache import now_millis
from .catalog import CatalogProvider
from .config import EngineConfig, get_config
from .qualifier import ShortlistSelector
from .schema import ProductRecord, QuestionnaireAnswers, RecommendationResult
from .scorer import ProductScorer

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """Runs the full recommendation pipeline for one set of answers."""

    def __init__(
        self,
        scorer: Optional[ProductScorer] = None,
        selector: Optional[ShortlistSelector] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or get_config()
        self.scorer = scorer or ProductScorer.from_config(self.config)
        self.selector = selector or ShortlistSelector.from_config(self.config)

    def recommend(
        self,
        products: list[ProductRecord],
        answers: QuestionnaireAnswers,
        target_count: Optional[int] = None,
    ) -> RecommendationResult:
        """Recommend products from an already fetched catalog.

        Args:
            products: Full in-stock catalog, in fetch order
            answers: Completed questionnaire answers
            target_count: Shortlist size (defaults to the configured size)

        Returns:
            RecommendationResult; never empty when ``products`` is non-empty
        """
        if target_count is None:
            target_count = self.config.selection.target_count

        scored = self.scorer.score_catalog(products, answers)
        selection = self.selector.select_with_details(scored, target_count)
        shortlist = selection.shortlist
        used_fallback = False

        if not shortlist and scored:
            logger.info(
                "No product reached score %d; showing the first %d catalog products",
                self.selector.relaxed_threshold, target_count,
            )
            shortlist = scored[:target_count]
            used_fallback = True

        logger.info(
            "Recommended %d of %d products (%d qualified)",
            len(shortlist), len(products), selection.qualified_count,
        )

        return RecommendationResult(
            answers=answers,
            recommendations=shortlist,
            timestamp=now_millis(),
            used_relaxed_threshold=selection.used_relaxed_threshold,
            used_catalog_fallback=used_fallback,
        )

    async def recommend_from(
        self,
        provider: CatalogProvider,
        answers: QuestionnaireAnswers,
        target_count: Optional[int] = None,
    ) -> RecommendationResult:
        """Fetch the catalog from ``provider`` and recommend from it.

        Catalog errors propagate unchanged; no retry is attempted.
        """
        products = await provider.fetch_all()
        return self.recommend(products, answers, target_count)
