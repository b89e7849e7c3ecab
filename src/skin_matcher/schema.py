"""Pydantic models for the Skin Matcher recommendation engine.

Input schemas for quiz answers and catalog products, and output schemas
for scored products and recommendation results.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _normalize_token(value: str) -> str:
    """Lower-case a raw option value and unify separators to underscores."""
    return value.strip().lower().replace("-", "_").replace(" ", "_")


# =============================================================================
# Questionnaire Enums
# =============================================================================


class AgeBracket(str, Enum):
    """Age range selected on the first quiz step."""
    AGE_18_25 = "18-25"
    AGE_26_35 = "26-35"
    AGE_36_45 = "36-45"
    AGE_46_55 = "46-55"
    AGE_55_PLUS = "55+"

    @classmethod
    def from_string(cls, value: str) -> "AgeBracket":
        """Parse an age bracket, tolerating spaces and en dashes."""
        cleaned = str(value).strip().replace(" ", "").replace("–", "-")
        for member in cls:
            if member.value == cleaned:
                return member
        if cleaned.lower() in ("55plus", "55_plus"):
            return cls.AGE_55_PLUS
        raise ValueError(f"Unknown age bracket: {value!r}")


class Gender(str, Enum):
    """How the user identifies. Collected but never used for scoring."""
    FEMALE = "female"
    MALE = "male"
    NON_BINARY = "non_binary"
    UNDISCLOSED = "undisclosed"

    @classmethod
    def from_string(cls, value: str) -> "Gender":
        """Parse gender, accepting the storefront's option values."""
        mapping = {
            "female": cls.FEMALE,
            "male": cls.MALE,
            "non_binary": cls.NON_BINARY,
            "nonbinary": cls.NON_BINARY,
            "undisclosed": cls.UNDISCLOSED,
            "prefer_not_to_say": cls.UNDISCLOSED,
        }
        key = _normalize_token(str(value))
        if key not in mapping:
            raise ValueError(f"Unknown gender option: {value!r}")
        return mapping[key]


class SkinType(str, Enum):
    """Self-reported skin type."""
    OILY = "oily"
    DRY = "dry"
    COMBINATION = "combination"
    SENSITIVE = "sensitive"
    NORMAL = "normal"


class SkinConcern(str, Enum):
    """Skin concerns; zero or more may be selected, one is required to submit."""
    ACNE = "acne"
    AGING = "aging"
    DARK_SPOTS = "dark_spots"
    DRYNESS = "dryness"
    SENSITIVITY = "sensitivity"
    DULLNESS = "dullness"
    PORES = "pores"
    TEXTURE = "texture"


class BudgetTier(str, Enum):
    """Budget tier. Price bands live in the engine configuration."""
    BUDGET = "budget"
    MID_RANGE = "mid_range"
    PREMIUM = "premium"


class Lifestyle(str, Enum):
    """Lifestyle preference."""
    BUSY = "busy"
    MINIMALIST = "minimalist"
    LUXURY = "luxury"
    NATURAL = "natural"


class ProductCategory(str, Enum):
    """Known catalog categories."""
    SOAPS = "soaps"
    TEAS = "teas"
    LOTIONS = "lotions"
    OILS = "oils"
    BEARD_CARE = "beard-care"
    SHAMPOOS = "shampoos"
    ROLL_ONS = "roll-ons"
    ELIXIRS = "elixirs"


def parse_option(enum_cls: type[Enum], value: Any) -> Enum:
    """Parse a raw quiz value into ``enum_cls``.

    Uses the enum's own ``from_string`` when it has one, otherwise matches
    on the normalized value (so ``mid-range`` and ``Dark Spots`` both work).
    """
    if isinstance(value, enum_cls):
        return value
    if hasattr(enum_cls, "from_string"):
        return enum_cls.from_string(value)
    key = _normalize_token(str(value))
    for member in enum_cls:
        if _normalize_token(member.value) == key:
            return member
    raise ValueError(f"Unknown {enum_cls.__name__} value: {value!r}")


# =============================================================================
# Questionnaire Answers
# =============================================================================


class QuestionnaireAnswers(BaseModel):
    """Completed quiz answers. Immutable once built."""
    age_bracket: AgeBracket
    gender: Gender = Gender.UNDISCLOSED
    skin_type: SkinType
    concerns: tuple[SkinConcern, ...]
    budget_tier: BudgetTier
    lifestyle: Lifestyle

    class Config:
        frozen = True

    @field_validator("age_bracket", mode="before")
    @classmethod
    def _parse_age(cls, value: Any) -> AgeBracket:
        return parse_option(AgeBracket, value)

    @field_validator("gender", mode="before")
    @classmethod
    def _parse_gender(cls, value: Any) -> Gender:
        return parse_option(Gender, value)

    @field_validator("skin_type", mode="before")
    @classmethod
    def _parse_skin_type(cls, value: Any) -> SkinType:
        return parse_option(SkinType, value)

    @field_validator("budget_tier", mode="before")
    @classmethod
    def _parse_budget(cls, value: Any) -> BudgetTier:
        return parse_option(BudgetTier, value)

    @field_validator("lifestyle", mode="before")
    @classmethod
    def _parse_lifestyle(cls, value: Any) -> Lifestyle:
        return parse_option(Lifestyle, value)

    @field_validator("concerns", mode="before")
    @classmethod
    def _parse_concerns(cls, value: Any) -> tuple[SkinConcern, ...]:
        if isinstance(value, (str, SkinConcern)):
            value = [value]
        concerns: list[SkinConcern] = []
        for item in value or []:
            concern = parse_option(SkinConcern, item)
            if concern not in concerns:
                concerns.append(concern)
        if not concerns:
            raise ValueError("At least one skin concern must be selected")
        return tuple(concerns)


# =============================================================================
# Catalog Models
# =============================================================================


class ProductRecord(BaseModel):
    """A catalog product as supplied by the catalog provider.

    Missing text fields become empty strings, missing tags an empty list
    and a missing or unparseable price 0, so scoring never has to guard
    against absent data.
    """
    id: Optional[str] = None
    title: Optional[str] = None
    description: str = ""
    short_description: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str = ""
    price: float = 0.0

    # Storefront fields, opaque to the engine
    slug: Optional[str] = None
    images: list[str] = Field(default_factory=list)
    in_stock: bool = True
    inventory: Optional[int] = None

    class Config:
        extra = "allow"

    @field_validator("id", "title", "slug", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    @field_validator("description", "short_description", "category", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("tags", "images", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if not isinstance(value, (list, tuple, set)):
            return []
        return [str(v) for v in value if v is not None]

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> float:
        try:
            price = float(value)
        except (TypeError, ValueError):
            return 0.0
        return max(0.0, price)

    @field_validator("inventory", mode="before")
    @classmethod
    def _coerce_inventory(cls, value: Any) -> Optional[int]:
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    @property
    def is_identifiable(self) -> bool:
        """Products without both an id and a title are never recommended."""
        return bool(self.id) and bool(self.title)

    def cart_payload(self) -> dict[str, Any]:
        """Fields an external add-to-cart action needs."""
        return {
            "id": self.id,
            "title": self.title,
            "images": list(self.images),
            "price": self.price,
            "category": self.category,
            "slug": self.slug,
            "in_stock": self.in_stock,
            "inventory": self.inventory,
        }


# =============================================================================
# Scoring and Output Models
# =============================================================================


class ScoredProduct(BaseModel):
    """A product with its score and the reasons behind it."""
    product: ProductRecord
    score: int = 0
    reasons: list[str] = Field(default_factory=list)

    @property
    def category(self) -> str:
        return self.product.category

    def top_reasons(self, limit: int = 3) -> list[str]:
        """Reasons shown on a result card."""
        return self.reasons[:limit]


class RecommendationResult(BaseModel):
    """Output of one quiz submission, cacheable as flat JSON."""
    answers: QuestionnaireAnswers
    recommendations: list[ScoredProduct] = Field(default_factory=list)
    timestamp: int = Field(..., description="Creation time in epoch milliseconds (UTC)")

    # Selection transparency
    used_relaxed_threshold: bool = False
    used_catalog_fallback: bool = False

    def cart_payloads(self) -> list[dict[str, Any]]:
        """Add-to-cart payloads for the recommended products, in shortlist order."""
        return [rec.product.cart_payload() for rec in self.recommendations]


# =============================================================================
# Quiz Step Models
# =============================================================================


class StepKind(str, Enum):
    """Answer cardinality of a quiz step."""
    SINGLE = "single"
    MULTIPLE = "multiple"


class QuizOption(BaseModel):
    """An option shown on a quiz step."""
    value: str
    label: str
    description: Optional[str] = None


class QuizStep(BaseModel):
    """One step of the skin matcher quiz."""
    step_id: str  # Matching QuestionnaireAnswers field name
    title: str
    kind: StepKind = StepKind.SINGLE
    options: list[QuizOption]

    def option_values(self) -> list[str]:
        return [opt.value for opt in self.options]
