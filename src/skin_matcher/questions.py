"""Quiz step definitions.

The six steps are asked in a fixed order. Option values are the enum
values of the matching ``QuestionnaireAnswers`` field.
"""

from .schema import (
    AgeBracket,
    BudgetTier,
    Gender,
    Lifestyle,
    QuizOption,
    QuizStep,
    SkinConcern,
    SkinType,
    StepKind,
)


QUIZ_STEPS: tuple[QuizStep, ...] = (
    QuizStep(
        step_id="age_bracket",
        title="What's your age range?",
        options=[
            QuizOption(value=AgeBracket.AGE_18_25.value, label="18-25"),
            QuizOption(value=AgeBracket.AGE_26_35.value, label="26-35"),
            QuizOption(value=AgeBracket.AGE_36_45.value, label="36-45"),
            QuizOption(value=AgeBracket.AGE_46_55.value, label="46-55"),
            QuizOption(value=AgeBracket.AGE_55_PLUS.value, label="55+"),
        ],
    ),
    QuizStep(
        step_id="gender",
        title="How do you identify?",
        options=[
            QuizOption(value=Gender.FEMALE.value, label="Female"),
            QuizOption(value=Gender.MALE.value, label="Male"),
            QuizOption(value=Gender.NON_BINARY.value, label="Non-binary"),
            QuizOption(value=Gender.UNDISCLOSED.value, label="Prefer not to say"),
        ],
    ),
    QuizStep(
        step_id="skin_type",
        title="What's your skin type?",
        options=[
            QuizOption(
                value=SkinType.OILY.value,
                label="Oily",
                description="Shiny, enlarged pores, prone to breakouts",
            ),
            QuizOption(
                value=SkinType.DRY.value,
                label="Dry",
                description="Tight, flaky, rough texture",
            ),
            QuizOption(
                value=SkinType.COMBINATION.value,
                label="Combination",
                description="Oily T-zone, dry cheeks",
            ),
            QuizOption(
                value=SkinType.SENSITIVE.value,
                label="Sensitive",
                description="Easily irritated, reactive",
            ),
            QuizOption(
                value=SkinType.NORMAL.value,
                label="Normal",
                description="Balanced, few imperfections",
            ),
        ],
    ),
    QuizStep(
        step_id="concerns",
        title="What are your main skin concerns?",
        kind=StepKind.MULTIPLE,
        options=[
            QuizOption(value=SkinConcern.ACNE.value, label="Acne & Breakouts"),
            QuizOption(value=SkinConcern.AGING.value, label="Aging & Wrinkles"),
            QuizOption(value=SkinConcern.DARK_SPOTS.value, label="Dark Spots & Hyperpigmentation"),
            QuizOption(value=SkinConcern.DRYNESS.value, label="Dryness & Dehydration"),
            QuizOption(value=SkinConcern.SENSITIVITY.value, label="Sensitivity & Redness"),
            QuizOption(value=SkinConcern.DULLNESS.value, label="Dullness & Uneven Tone"),
            QuizOption(value=SkinConcern.PORES.value, label="Large Pores"),
            QuizOption(value=SkinConcern.TEXTURE.value, label="Rough Texture"),
        ],
    ),
    QuizStep(
        step_id="budget_tier",
        title="What's your skincare budget?",
        options=[
            QuizOption(value=BudgetTier.BUDGET.value, label="Budget (£10-25)"),
            QuizOption(value=BudgetTier.MID_RANGE.value, label="Mid-range (£25-50)"),
            QuizOption(value=BudgetTier.PREMIUM.value, label="Premium (£50+)"),
        ],
    ),
    QuizStep(
        step_id="lifestyle",
        title="Describe your lifestyle",
        options=[
            QuizOption(
                value=Lifestyle.BUSY.value,
                label="Busy & On-the-go",
                description="Need quick, effective routines",
            ),
            QuizOption(
                value=Lifestyle.MINIMALIST.value,
                label="Minimalist",
                description="Prefer simple, essential products",
            ),
            QuizOption(
                value=Lifestyle.LUXURY.value,
                label="Luxury & Pampering",
                description="Enjoy indulgent skincare rituals",
            ),
            QuizOption(
                value=Lifestyle.NATURAL.value,
                label="Natural & Organic",
                description="Prefer clean, natural ingredients",
            ),
        ],
    ),
)


def get_step(step_id: str) -> QuizStep:
    """Look up a step by its answer field name."""
    for step in QUIZ_STEPS:
        if step.step_id == step_id:
            return step
    raise KeyError(step_id)
