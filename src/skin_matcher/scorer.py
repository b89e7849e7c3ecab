"""Product scorer.

Scores a catalog product against completed quiz answers. Each rule is an
independent function returning zero or more ``RuleOutcome`` values; the
scorer sums the increments and collects the reasons in rule order.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from .config import BudgetBandsConfig, EngineConfig, get_config
from .ruleset import DEFAULT_RULESET, Ruleset, first_match, load_ruleset
from .schema import (
    BudgetTier,
    ProductRecord,
    QuestionnaireAnswers,
    ScoredProduct,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleOutcome:
    """Contribution of a single rule to a product's score."""
    rule: str
    increment: int
    reason: Optional[str] = None


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule needs to evaluate one product."""
    product: ProductRecord
    haystack: str
    answers: QuestionnaireAnswers
    ruleset: Ruleset
    budget_bands: BudgetBandsConfig


Rule = Callable[[RuleContext], list[RuleOutcome]]


def build_haystack(product: ProductRecord) -> str:
    """Lower-cased long and short description, the keyword search target."""
    return f"{product.description} {product.short_description}".lower()


def budget_tier_for_price(price: float, bands: BudgetBandsConfig) -> BudgetTier:
    """Map a price onto the budget tier whose band contains it."""
    if price <= bands.budget_max:
        return BudgetTier.BUDGET
    if price <= bands.mid_range_max:
        return BudgetTier.MID_RANGE
    return BudgetTier.PREMIUM


# =============================================================================
# Rules
# =============================================================================


def age_rule(ctx: RuleContext) -> list[RuleOutcome]:
    """Age bracket ladder; stronger increments for mature-skin language."""
    ladder = ctx.ruleset.age.get(ctx.answers.age_bracket, [])
    tier = first_match(ladder, ctx.haystack, ctx.product.category)
    if tier is None:
        return []
    return [RuleOutcome("age", tier.increment, tier.reason)]


def skin_type_rule(ctx: RuleContext) -> list[RuleOutcome]:
    """Skin type ladder, including category fallbacks."""
    ladder = ctx.ruleset.skin_type.get(ctx.answers.skin_type, [])
    tier = first_match(ladder, ctx.haystack, ctx.product.category)
    if tier is None:
        return []
    return [RuleOutcome("skin_type", tier.increment, tier.reason)]


def concern_rules(ctx: RuleContext) -> list[RuleOutcome]:
    """One ladder per selected concern; outcomes accumulate independently."""
    outcomes = []
    for concern in ctx.answers.concerns:
        ladder = ctx.ruleset.concerns.get(concern, [])
        tier = first_match(ladder, ctx.haystack, ctx.product.category)
        if tier is not None:
            outcomes.append(RuleOutcome(f"concern:{concern.value}", tier.increment, tier.reason))
    return outcomes


def budget_rule(ctx: RuleContext) -> list[RuleOutcome]:
    """Fixed bonus when the price falls in the user's budget band."""
    tier = budget_tier_for_price(ctx.product.price, ctx.budget_bands)
    if tier != ctx.answers.budget_tier:
        return []
    reason = ctx.ruleset.budget_reasons.get(tier)
    return [RuleOutcome("budget", ctx.ruleset.budget_increment, reason)]


def lifestyle_rule(ctx: RuleContext) -> list[RuleOutcome]:
    """Lifestyle keywords found in the tags or the long description."""
    rule = ctx.ruleset.lifestyle.get(ctx.answers.lifestyle)
    if rule is None:
        return []

    tags = {t.lower() for t in ctx.product.tags}
    description = ctx.product.description.lower()
    for keyword in rule.keywords:
        kw = keyword.lower()
        if kw in tags or kw in description:
            return [RuleOutcome("lifestyle", rule.increment, rule.reason)]
    return []


def category_affinity_rules(ctx: RuleContext) -> list[RuleOutcome]:
    """Small bonuses for category/skin-type and category/concern pairs."""
    outcomes = []
    category = ctx.product.category.lower()
    for affinity in ctx.ruleset.category_affinity:
        if affinity.category.lower() != category:
            continue
        if affinity.skin_type is not None and affinity.skin_type != ctx.answers.skin_type:
            continue
        if affinity.concern is not None and affinity.concern not in ctx.answers.concerns:
            continue
        outcomes.append(RuleOutcome(f"category:{affinity.category}", affinity.increment, affinity.reason))
    return outcomes


DEFAULT_RULES: tuple[Rule, ...] = (
    age_rule,
    skin_type_rule,
    concern_rules,
    budget_rule,
    lifestyle_rule,
    category_affinity_rules,
)


# =============================================================================
# Scorer
# =============================================================================


def coerce_product(product: Union[ProductRecord, dict[str, Any]]) -> ProductRecord:
    """Accept raw product dicts as well as ProductRecord instances."""
    if isinstance(product, ProductRecord):
        return product
    try:
        return ProductRecord.model_validate(product)
    except ValidationError as exc:
        logger.warning("Unusable product record, scoring as empty: %s", exc.errors()[:1])
        return ProductRecord()


class ProductScorer:
    """Scores products against questionnaire answers.

    Scoring principles:
    - Rules are evaluated independently and never see each other's output
    - Within a ladder the first matching tier wins
    - Products missing an id or title score 0 with no reasons
    - Every scored product gets at least one reason
    """

    def __init__(
        self,
        ruleset: Optional[Ruleset] = None,
        budget_bands: Optional[BudgetBandsConfig] = None,
        rules: Optional[tuple[Rule, ...]] = None,
    ):
        self.ruleset = ruleset or DEFAULT_RULESET
        self.budget_bands = budget_bands or BudgetBandsConfig()
        self.rules = rules or DEFAULT_RULES

    @classmethod
    def from_config(cls, config: Optional[EngineConfig] = None) -> "ProductScorer":
        """Build a scorer from engine configuration."""
        config = config or get_config()
        ruleset = None
        if config.ruleset_path:
            ruleset = load_ruleset(Path(config.ruleset_path))
        return cls(ruleset=ruleset, budget_bands=config.budget_bands)

    def explain(
        self,
        product: Union[ProductRecord, dict[str, Any]],
        answers: QuestionnaireAnswers,
    ) -> list[RuleOutcome]:
        """Return every rule outcome for a product, in evaluation order."""
        product = coerce_product(product)
        if not product.is_identifiable:
            return []

        ctx = RuleContext(
            product=product,
            haystack=build_haystack(product),
            answers=answers,
            ruleset=self.ruleset,
            budget_bands=self.budget_bands,
        )

        outcomes: list[RuleOutcome] = []
        for rule in self.rules:
            outcomes.extend(rule(ctx))

        if not any(o.reason for o in outcomes):
            outcomes.append(RuleOutcome(
                "fallback",
                0,
                self.ruleset.fallback_reason.format(category=product.category),
            ))

        return outcomes

    def score(
        self,
        product: Union[ProductRecord, dict[str, Any]],
        answers: QuestionnaireAnswers,
    ) -> tuple[int, list[str]]:
        """Score one product.

        Args:
            product: Catalog product (model or raw dict)
            answers: Completed questionnaire answers

        Returns:
            Tuple of (score, reasons)
        """
        outcomes = self.explain(product, answers)
        score = sum(o.increment for o in outcomes)
        reasons = [o.reason for o in outcomes if o.reason]
        return score, reasons

    def score_catalog(
        self,
        products: list[ProductRecord],
        answers: QuestionnaireAnswers,
    ) -> list[ScoredProduct]:
        """Score every product, preserving catalog order."""
        scored = []
        for product in products:
            product = coerce_product(product)
            score, reasons = self.score(product, answers)
            logger.debug("Scored %s (%s): %d", product.id, product.category, score)
            scored.append(ScoredProduct(product=product, score=score, reasons=reasons))
        return scored


_default_scorer: Optional[ProductScorer] = None


def score_product(
    product: Union[ProductRecord, dict[str, Any]],
    answers: QuestionnaireAnswers,
) -> tuple[int, list[str]]:
    """Score a product with the built-in ruleset and default budget bands."""
    global _default_scorer
    if _default_scorer is None:
        _default_scorer = ProductScorer()
    return _default_scorer.score(product, answers)
