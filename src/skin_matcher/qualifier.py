"""Shortlist Selector - reduces scored products to the final recommendations.

Applies the qualification threshold, relaxes it when too few products
qualify, keeps the best product per category and returns the top entries.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .config import EngineConfig, get_config
from .schema import ScoredProduct

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """Shortlist plus the bookkeeping behind it."""
    shortlist: list[ScoredProduct] = field(default_factory=list)
    qualified_count: int = 0
    candidate_count: int = 0
    used_relaxed_threshold: bool = False


def sort_by_score(products: list[ScoredProduct]) -> list[ScoredProduct]:
    """Stable descending sort; ties keep catalog order."""
    return sorted(products, key=lambda p: p.score, reverse=True)


def best_per_category(candidates: list[ScoredProduct]) -> list[ScoredProduct]:
    """Keep the highest-scoring product of each category.

    A later product only replaces the kept one with a strictly greater
    score, so among equal scores the first one seen wins.
    """
    best: dict[str, ScoredProduct] = {}
    for product in candidates:
        kept = best.get(product.category)
        if kept is None or product.score > kept.score:
            best[product.category] = product
    return list(best.values())


class ShortlistSelector:
    """Selects a small, category-diverse, score-ordered shortlist.

    Selection is deterministic given its input:
    - Products scoring at least the qualified threshold are candidates
    - With fewer candidates than requested, the relaxed threshold is applied
      to the full scored list instead
    - One product per category survives, best score first
    """

    def __init__(self, qualified_threshold: int = 3, relaxed_threshold: int = 1):
        self.qualified_threshold = qualified_threshold
        self.relaxed_threshold = relaxed_threshold

    @classmethod
    def from_config(cls, config: Optional[EngineConfig] = None) -> "ShortlistSelector":
        config = config or get_config()
        return cls(
            qualified_threshold=config.selection.qualified_threshold,
            relaxed_threshold=config.selection.relaxed_threshold,
        )

    def select(self, scored: list[ScoredProduct], target_count: int = 3) -> list[ScoredProduct]:
        """Return at most ``target_count`` recommended products.

        Args:
            scored: All scored products, in catalog order
            target_count: Shortlist size

        Returns:
            Score-descending shortlist with no repeated category
        """
        return self.select_with_details(scored, target_count).shortlist

    def select_with_details(
        self,
        scored: list[ScoredProduct],
        target_count: int = 3,
    ) -> Selection:
        """Like ``select`` but also reports whether the threshold was relaxed."""
        if target_count < 1:
            raise ValueError(f"target_count must be at least 1, got {target_count}")

        qualified = [p for p in scored if p.score >= self.qualified_threshold]
        candidates = qualified
        relaxed = False

        if len(qualified) < target_count:
            # Re-filter the full list; not a narrowing of the qualified set
            candidates = [p for p in scored if p.score >= self.relaxed_threshold]
            relaxed = True
            logger.info(
                "Only %d of %d products reached score %d; relaxed to %d (%d candidates)",
                len(qualified), len(scored), self.qualified_threshold,
                self.relaxed_threshold, len(candidates),
            )

        diversified = sort_by_score(best_per_category(sort_by_score(candidates)))

        return Selection(
            shortlist=diversified[:target_count],
            qualified_count=len(qualified),
            candidate_count=len(candidates),
            used_relaxed_threshold=relaxed,
        )


def select_shortlist(scored: list[ScoredProduct], target_count: int = 3) -> list[ScoredProduct]:
    """Select a shortlist with the default thresholds."""
    return ShortlistSelector().select(scored, target_count)
