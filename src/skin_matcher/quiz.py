"""Quiz state machine.

Walks a user through the six quiz steps, guards each step on completion,
and on submission fetches the catalog and runs the recommendation engine.

States:
    STEP        answering step ``step_index`` (initial state, index 0)
    SUBMITTING  catalog fetch in flight, or failed (``error`` is set)
    RESULTS     shortlist available until ``retake()``
"""

import logging
import uuid
from enum import Enum
from typing import Any, Optional, Union

from .cache import ResultCache
from .catalog import CatalogProvider
from .engine import RecommendationEngine
from .questions import QUIZ_STEPS
from .schema import (
    AgeBracket,
    BudgetTier,
    Gender,
    Lifestyle,
    QuestionnaireAnswers,
    QuizStep,
    RecommendationResult,
    SkinConcern,
    SkinType,
    StepKind,
    parse_option,
)

logger = logging.getLogger(__name__)

STEP_ENUMS = {
    "age_bracket": AgeBracket,
    "gender": Gender,
    "skin_type": SkinType,
    "concerns": SkinConcern,
    "budget_tier": BudgetTier,
    "lifestyle": Lifestyle,
}


class QuizPhase(str, Enum):
    """Top-level state of a quiz session."""
    STEP = "step"
    SUBMITTING = "submitting"
    RESULTS = "results"


class QuizStateError(Exception):
    """Raised when an operation is not allowed in the current state."""


class IncompleteStepError(QuizStateError):
    """Raised when advancing or submitting with an unanswered step."""


class SubmissionError(QuizStateError):
    """Raised when the catalog fetch fails during submission."""


class QuizSession:
    """One user's pass through the quiz.

    Sessions share nothing: answers, results and errors are local to the
    instance. The catalog provider is only ever read.
    """

    def __init__(
        self,
        catalog_provider: CatalogProvider,
        engine: Optional[RecommendationEngine] = None,
        cache: Optional[ResultCache] = None,
        session_id: Optional[str] = None,
        steps: tuple[QuizStep, ...] = QUIZ_STEPS,
    ):
        self.catalog_provider = catalog_provider
        self.engine = engine or RecommendationEngine()
        self.cache = cache
        self.session_id = session_id or uuid.uuid4().hex
        self.steps = steps

        self.phase = QuizPhase.STEP
        self.step_index = 0
        self.error: Optional[BaseException] = None
        self.result: Optional[RecommendationResult] = None
        self._answers: dict[str, Any] = {}

    # ── Introspection ───────────────────────────────────────────────────

    @property
    def current_step(self) -> QuizStep:
        return self.steps[self.step_index]

    @property
    def is_last_step(self) -> bool:
        return self.step_index == len(self.steps) - 1

    @property
    def progress(self) -> float:
        """Percent complete, counting the current step as reached."""
        return (self.step_index + 1) / len(self.steps) * 100

    @property
    def failed(self) -> bool:
        return self.phase == QuizPhase.SUBMITTING and self.error is not None

    @property
    def answers(self) -> dict[str, Any]:
        """Copy of the answers recorded so far."""
        return {
            k: list(v) if isinstance(v, list) else v
            for k, v in self._answers.items()
        }

    def current_answer(self) -> Any:
        step = self.current_step
        if step.kind == StepKind.MULTIPLE:
            return list(self._answers.get(step.step_id, []))
        return self._answers.get(step.step_id)

    def is_step_complete(self, step: Optional[QuizStep] = None) -> bool:
        """Single-choice steps need a value; multiple-choice steps need one or more."""
        step = step or self.current_step
        value = self._answers.get(step.step_id)
        if step.kind == StepKind.MULTIPLE:
            return bool(value)
        return value is not None

    # ── Answering and navigation ────────────────────────────────────────

    def _require_phase(self, phase: QuizPhase) -> None:
        if self.phase != phase:
            raise QuizStateError(
                f"Operation not allowed while quiz is in '{self.phase.value}' state"
            )

    def _parse_value(self, step: QuizStep, value: Any) -> str:
        enum_cls = STEP_ENUMS.get(step.step_id)
        try:
            parsed = parse_option(enum_cls, value).value if enum_cls else str(value)
        except ValueError as e:
            raise ValueError(f"Invalid option for {step.step_id}: {value!r}") from e
        if parsed not in step.option_values():
            raise ValueError(f"Invalid option for {step.step_id}: {value!r}")
        return parsed

    def answer(self, value: Union[str, list[str]]) -> None:
        """Record the answer for the current step. Does not advance."""
        self._require_phase(QuizPhase.STEP)
        step = self.current_step

        if step.kind == StepKind.MULTIPLE:
            values = [value] if isinstance(value, str) else list(value)
            selected: list[str] = []
            for v in values:
                parsed = self._parse_value(step, v)
                if parsed not in selected:
                    selected.append(parsed)
            self._answers[step.step_id] = selected
        else:
            if not isinstance(value, str):
                raise ValueError(f"{step.step_id} takes a single value")
            self._answers[step.step_id] = self._parse_value(step, value)

    def toggle(self, value: str) -> list[str]:
        """Add or remove one option on a multiple-choice step."""
        self._require_phase(QuizPhase.STEP)
        step = self.current_step
        if step.kind != StepKind.MULTIPLE:
            raise QuizStateError(f"Step '{step.step_id}' is single-choice")

        parsed = self._parse_value(step, value)
        selected = list(self._answers.get(step.step_id, []))
        if parsed in selected:
            selected.remove(parsed)
        else:
            selected.append(parsed)
        self._answers[step.step_id] = selected
        return list(selected)

    def next(self) -> bool:
        """Advance one step.

        Returns:
            True if the session moved forward, False on the last step.
            Leaving the last step for SUBMITTING happens through the async
            ``submit()``, since it awaits the catalog fetch.

        Raises:
            IncompleteStepError: If the current step has no answer.
        """
        self._require_phase(QuizPhase.STEP)
        if not self.is_step_complete():
            raise IncompleteStepError(f"Step '{self.current_step.step_id}' is not answered")
        if self.is_last_step:
            return False
        self.step_index += 1
        return True

    def previous(self) -> bool:
        """Go back one step. Returns False on the first step."""
        self._require_phase(QuizPhase.STEP)
        if self.step_index == 0:
            return False
        self.step_index -= 1
        return True

    # ── Submission ──────────────────────────────────────────────────────

    def build_answers(self) -> QuestionnaireAnswers:
        """Freeze the recorded answers.

        Raises:
            IncompleteStepError: If any step is unanswered.
        """
        missing = [s.step_id for s in self.steps if not self.is_step_complete(s)]
        if missing:
            raise IncompleteStepError(f"Unanswered steps: {', '.join(missing)}")
        return QuestionnaireAnswers(**self._answers)

    async def submit(self) -> RecommendationResult:
        """Fetch the catalog, score it and move to RESULTS.

        Allowed on the last step, or from a failed submission (the
        caller's retry). On a catalog failure the session stays in
        SUBMITTING with ``error`` set and ``SubmissionError`` is raised.
        """
        if self.phase == QuizPhase.STEP:
            if not self.is_last_step:
                raise QuizStateError("Submit is only available on the last step")
        elif not self.failed:
            raise QuizStateError(
                f"Cannot submit while quiz is in '{self.phase.value}' state"
            )

        answers = self.build_answers()
        self.phase = QuizPhase.SUBMITTING
        self.error = None

        try:
            products = await self.catalog_provider.fetch_all()
        except Exception as e:
            self.error = e
            logger.error("Catalog fetch failed for session %s: %s", self.session_id, e)
            raise SubmissionError(f"Could not load the product catalog: {e}") from e

        result = self.engine.recommend(products, answers)
        self.result = result
        self.phase = QuizPhase.RESULTS

        if self.cache is not None:
            self.cache.save(self.session_id, result)

        return result

    def retake(self) -> None:
        """Clear answers and results and return to the first step."""
        self.phase = QuizPhase.STEP
        self.step_index = 0
        self.error = None
        self.result = None
        self._answers = {}
