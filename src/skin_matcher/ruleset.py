"""Keyword tier ladders used by the product scorer.

Every scoring rule reads its keywords, increments and reason strings from a
``Ruleset``. The shipped ``DEFAULT_RULESET`` can be dumped to YAML, edited
and loaded back without touching the scorer.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .schema import AgeBracket, BudgetTier, Lifestyle, SkinConcern, SkinType


class KeywordTier(BaseModel):
    """One rung of a tier ladder.

    A tier matches when any keyword is a substring of the haystack, or when
    the product category is listed in ``categories``. A tier with neither
    keywords nor categories always matches.
    """
    keywords: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    increment: int
    reason: str

    def matches(self, haystack: str, category: str) -> bool:
        if not self.keywords and not self.categories:
            return True
        if any(kw.lower() in haystack for kw in self.keywords):
            return True
        return category.lower() in (c.lower() for c in self.categories)


class LifestyleRule(BaseModel):
    """Keywords looked up in product tags and the long description."""
    keywords: list[str]
    increment: int = 2
    reason: str


class CategoryAffinity(BaseModel):
    """Bonus for a category that suits a skin type or a concern."""
    category: str
    skin_type: Optional[SkinType] = None
    concern: Optional[SkinConcern] = None
    increment: int = 1
    reason: str


class Ruleset(BaseModel):
    """All tables the scorer evaluates."""
    age: dict[AgeBracket, list[KeywordTier]] = Field(default_factory=dict)
    skin_type: dict[SkinType, list[KeywordTier]] = Field(default_factory=dict)
    concerns: dict[SkinConcern, list[KeywordTier]] = Field(default_factory=dict)
    budget_increment: int = 2
    budget_reasons: dict[BudgetTier, str] = Field(default_factory=dict)
    lifestyle: dict[Lifestyle, LifestyleRule] = Field(default_factory=dict)
    category_affinity: list[CategoryAffinity] = Field(default_factory=list)
    fallback_reason: str = "Great {category} option for your skin profile"


def first_match(
    ladder: list[KeywordTier],
    haystack: str,
    category: str,
) -> Optional[KeywordTier]:
    """Return the highest tier of ``ladder`` that matches, if any."""
    for tier in ladder:
        if tier.matches(haystack, category):
            return tier
    return None


def _tier(increment: int, reason: str, *keywords: str) -> KeywordTier:
    return KeywordTier(keywords=list(keywords), increment=increment, reason=reason)


def _category_tier(increment: int, reason: str, *categories: str) -> KeywordTier:
    return KeywordTier(categories=list(categories), increment=increment, reason=reason)


DEFAULT_RULESET = Ruleset(
    age={
        AgeBracket.AGE_18_25: [
            _tier(4, "Perfect for young skin and acne concerns",
                  "teen", "acne", "breakout", "clear"),
            _tier(2, "Gentle formula suitable for young skin", "gentle", "mild"),
        ],
        AgeBracket.AGE_26_35: [
            _tier(4, "Ideal for preventive anti-aging care",
                  "anti-aging", "preventive", "wrinkle", "firming"),
            _tier(2, "Great for maintaining healthy skin", "hydrating", "moisturizing"),
        ],
        AgeBracket.AGE_36_45: [
            _tier(5, "Targeted for mature skin concerns",
                  "anti-aging", "mature", "wrinkle", "firming"),
            _tier(3, "Excellent for mature skin hydration", "hydrating", "nourishing"),
        ],
        AgeBracket.AGE_46_55: [
            _tier(5, "Formulated for mature skin needs",
                  "mature", "anti-aging", "intensive", "wrinkle"),
            _tier(3, "Great for mature skin care", "hydrating", "nourishing"),
        ],
        AgeBracket.AGE_55_PLUS: [
            _tier(6, "Intensive care for mature skin",
                  "mature", "intensive", "anti-aging", "wrinkle"),
            _tier(4, "Excellent for mature skin nourishment", "hydrating", "nourishing"),
        ],
    },
    skin_type={
        SkinType.OILY: [
            _tier(5, "Perfect for oily skin - helps control shine",
                  "oil-free", "mattifying", "non-comedogenic", "lightweight"),
            _tier(3, "Great for oily skin cleansing", "cleansing", "purifying"),
            _category_tier(2, "Soap formula ideal for oily skin", "soaps"),
        ],
        SkinType.DRY: [
            _tier(5, "Excellent for dry skin - provides deep hydration",
                  "hydrating", "moisturizing", "nourishing", "rich"),
            _tier(3, "Rich formula perfect for dry skin", "oil", "butter", "cream"),
            _category_tier(2, "Moisturizing formula for dry skin", "oils", "lotions"),
        ],
        SkinType.SENSITIVE: [
            _tier(5, "Gentle formula perfect for sensitive skin",
                  "gentle", "sensitive", "calming", "soothing"),
            _tier(3, "Natural ingredients safe for sensitive skin",
                  "natural", "organic", "fragrance-free"),
        ],
        SkinType.COMBINATION: [
            _tier(4, "Balancing formula for combination skin",
                  "balancing", "combination", "normalizing"),
            _tier(2, "Gentle formula suitable for combination skin", "gentle", "mild"),
        ],
        SkinType.NORMAL: [
            _tier(3, "Perfect for maintaining healthy skin",
                  "maintaining", "healthy", "balanced"),
            _tier(1, "Suitable for normal skin"),
        ],
    },
    concerns={
        SkinConcern.ACNE: [
            _tier(4, "Targets acne and breakouts effectively",
                  "acne", "salicylic", "breakout", "bha"),
            _tier(2, "Helps cleanse and purify skin", "cleansing", "purifying"),
        ],
        SkinConcern.AGING: [
            _tier(4, "Anti-aging properties to reduce fine lines",
                  "anti-aging", "retinol", "wrinkle", "firming"),
            _tier(2, "Helps maintain youthful skin", "hydrating", "moisturizing"),
        ],
        SkinConcern.DARK_SPOTS: [
            _tier(4, "Brightening formula to fade dark spots",
                  "brightening", "vitamin-c", "lightening", "even"),
            _tier(2, "Helps improve skin tone", "exfoliating", "renewing"),
        ],
        SkinConcern.DRYNESS: [
            _tier(4, "Intensive hydration for dry skin",
                  "hydrating", "hyaluronic", "moisturizing", "nourishing"),
            _tier(2, "Rich moisturizing formula", "oil", "butter"),
        ],
        SkinConcern.SENSITIVITY: [
            _tier(4, "Calming ingredients for sensitive skin",
                  "gentle", "calming", "soothing", "sensitive"),
            _tier(2, "Natural ingredients gentle on skin", "natural", "organic"),
        ],
        SkinConcern.DULLNESS: [
            _tier(4, "Brightening and exfoliating for radiant skin",
                  "brightening", "exfoliating", "radiant", "glow"),
            _tier(2, "Antioxidant properties for healthy glow", "vitamin-c", "antioxidant"),
        ],
        SkinConcern.PORES: [
            _tier(4, "Helps minimize and tighten pores", "pore", "minimizing", "tightening"),
            _tier(2, "Deep cleansing for pore care", "cleansing", "purifying"),
        ],
        SkinConcern.TEXTURE: [
            _tier(4, "Smoothing formula for improved texture",
                  "smooth", "exfoliating", "refining"),
            _tier(2, "Helps improve skin texture", "renewing", "regenerating"),
        ],
    },
    budget_increment=2,
    budget_reasons={
        BudgetTier.BUDGET: "Fits your budget range perfectly",
        BudgetTier.MID_RANGE: "Great value in your preferred price range",
        BudgetTier.PREMIUM: "Premium quality within your budget",
    },
    # No keywords are defined for the busy lifestyle
    lifestyle={
        Lifestyle.NATURAL: LifestyleRule(
            keywords=["natural", "organic"],
            reason="Made with natural and organic ingredients",
        ),
        Lifestyle.MINIMALIST: LifestyleRule(
            keywords=["multi-purpose", "essential"],
            reason="Multi-purpose formula for your minimalist routine",
        ),
        Lifestyle.LUXURY: LifestyleRule(
            keywords=["premium", "luxury"],
            reason="Luxury formula for indulgent skincare",
        ),
    },
    category_affinity=[
        CategoryAffinity(
            category="soaps",
            skin_type=SkinType.OILY,
            reason="Soap formula ideal for oily skin cleansing",
        ),
        CategoryAffinity(
            category="oils",
            skin_type=SkinType.DRY,
            reason="Oil-based formula perfect for dry skin nourishment",
        ),
        CategoryAffinity(
            category="lotions",
            concern=SkinConcern.DRYNESS,
            reason="Lotion texture ideal for dry skin hydration",
        ),
    ],
)


def load_ruleset(path: Path) -> Ruleset:
    """Load a ruleset from a YAML file.

    Args:
        path: Path to the YAML ruleset.

    Returns:
        The validated Ruleset.
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    return Ruleset.model_validate(data or {})


def save_ruleset(path: Path, ruleset: Optional[Ruleset] = None) -> None:
    """Write a ruleset (the default one unless given) to a YAML file."""
    ruleset = ruleset or DEFAULT_RULESET
    data = ruleset.model_dump(mode="json", exclude_defaults=False)

    yaml_content = """# Skin Matcher Ruleset
# ====================
#
# Tier ladders are evaluated top to bottom; the first matching tier wins.
# A tier with no keywords and no categories always matches.

"""
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)
