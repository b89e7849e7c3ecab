"""Tests for the quiz state machine."""

import asyncio

import pytest

from conftest import make_product
from skin_matcher.cache import ResultCache
from skin_matcher.catalog import CatalogLoadError, InMemoryCatalogProvider
from skin_matcher.questions import QUIZ_STEPS, get_step
from skin_matcher.quiz import (
    IncompleteStepError,
    QuizPhase,
    QuizSession,
    QuizStateError,
    SubmissionError,
)

ANSWERS = [
    ("age_bracket", "18-25"),
    ("gender", "female"),
    ("skin_type", "oily"),
    ("concerns", ["acne"]),
    ("budget_tier", "budget"),
    ("lifestyle", "busy"),
]


def _catalog():
    return [
        make_product(id="soap", title="Charcoal Soap", category="soaps",
                     description="purifying acne bar", price=8),
        make_product(id="tea", title="Green Tea", category="teas"),
    ]


class FlakyProvider:
    """Fails a given number of fetches, then serves the catalog."""

    def __init__(self, failures: int = 1):
        self.failures = failures
        self.calls = 0

    async def fetch_all(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise CatalogLoadError("network down")
        return _catalog()


def _walk_to_last_step(session: QuizSession) -> None:
    for step_id, value in ANSWERS[:-1]:
        assert session.current_step.step_id == step_id
        session.answer(value)
        assert session.next()
    session.answer(ANSWERS[-1][1])


class TestQuizSteps:
    """Tests for step definitions."""

    def test_six_steps_in_order(self):
        assert [s.step_id for s in QUIZ_STEPS] == [step_id for step_id, _ in ANSWERS]

    def test_get_step(self):
        assert get_step("concerns").kind.value == "multiple"
        with pytest.raises(KeyError):
            get_step("hair_type")


class TestNavigation:
    """Tests for answering and moving between steps."""

    def test_starts_on_first_step(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        assert session.phase == QuizPhase.STEP
        assert session.step_index == 0
        assert session.progress == pytest.approx(100 / 6)

    def test_next_requires_answer(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        with pytest.raises(IncompleteStepError):
            session.next()
        assert session.step_index == 0

    def test_multiple_choice_requires_one_selection(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        for _, value in ANSWERS[:3]:
            session.answer(value)
            session.next()
        assert session.current_step.step_id == "concerns"
        session.answer([])
        with pytest.raises(IncompleteStepError):
            session.next()

    def test_previous_keeps_answers(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        session.answer("26-35")
        session.next()
        assert session.previous()
        assert session.current_answer() == "26-35"
        assert not session.previous()

    def test_next_returns_false_on_last_step(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        _walk_to_last_step(session)
        assert session.is_last_step
        assert session.progress == pytest.approx(100)
        assert not session.next()
        assert session.phase == QuizPhase.STEP

    def test_invalid_option_rejected(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        with pytest.raises(ValueError, match="age_bracket"):
            session.answer("12-17")

    def test_single_choice_rejects_list(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        with pytest.raises(ValueError):
            session.answer(["18-25"])

    def test_lenient_option_values(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        session.answer("18-25")
        session.next()
        session.answer("prefer-not-to-say")
        assert session.current_answer() == "undisclosed"

    def test_toggle_concerns(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        for _, value in ANSWERS[:3]:
            session.answer(value)
            session.next()

        assert session.toggle("acne") == ["acne"]
        assert session.toggle("dark-spots") == ["acne", "dark_spots"]
        assert session.toggle("acne") == ["dark_spots"]

    def test_toggle_rejected_on_single_choice_step(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        with pytest.raises(QuizStateError):
            session.toggle("18-25")

    def test_answers_returns_copy(self):
        session = QuizSession(InMemoryCatalogProvider([]))
        for _, value in ANSWERS[:4]:
            session.answer(value)
            session.next()
        session.answers["concerns"].append("aging")
        assert session.answers["concerns"] == ["acne"]


class TestSubmission:
    """Tests for submit, failure, retry and retake."""

    def test_submit_only_on_last_step(self):
        session = QuizSession(InMemoryCatalogProvider(_catalog()))
        session.answer("18-25")
        with pytest.raises(QuizStateError):
            asyncio.run(session.submit())

    def test_submit_produces_results(self):
        session = QuizSession(InMemoryCatalogProvider(_catalog()))
        _walk_to_last_step(session)
        result = asyncio.run(session.submit())

        assert session.phase == QuizPhase.RESULTS
        assert session.result is result
        assert result.recommendations[0].product.id == "soap"
        assert result.answers.concerns[0].value == "acne"

    def test_results_state_rejects_navigation(self):
        session = QuizSession(InMemoryCatalogProvider(_catalog()))
        _walk_to_last_step(session)
        asyncio.run(session.submit())
        with pytest.raises(QuizStateError):
            session.previous()
        with pytest.raises(QuizStateError):
            asyncio.run(session.submit())

    def test_failed_fetch_stays_submitting(self):
        provider = FlakyProvider(failures=1)
        session = QuizSession(provider)
        _walk_to_last_step(session)

        with pytest.raises(SubmissionError, match="network down"):
            asyncio.run(session.submit())

        assert session.phase == QuizPhase.SUBMITTING
        assert session.failed
        assert isinstance(session.error, CatalogLoadError)
        assert session.result is None

    def test_retry_after_failure(self):
        provider = FlakyProvider(failures=1)
        session = QuizSession(provider)
        _walk_to_last_step(session)
        with pytest.raises(SubmissionError):
            asyncio.run(session.submit())

        result = asyncio.run(session.submit())
        assert provider.calls == 2
        assert session.phase == QuizPhase.RESULTS
        assert session.error is None
        assert result.recommendations

    def test_retake_resets_everything(self):
        session = QuizSession(InMemoryCatalogProvider(_catalog()))
        _walk_to_last_step(session)
        asyncio.run(session.submit())

        session.retake()
        assert session.phase == QuizPhase.STEP
        assert session.step_index == 0
        assert session.result is None
        assert session.answers == {}

    def test_result_is_cached(self, tmp_path):
        cache = ResultCache(tmp_path)
        session = QuizSession(InMemoryCatalogProvider(_catalog()), cache=cache, session_id="abc")
        _walk_to_last_step(session)
        result = asyncio.run(session.submit())

        assert cache.path_for("abc").exists()
        assert cache.load("abc") == result

    def test_sessions_are_independent(self):
        provider = InMemoryCatalogProvider(_catalog())
        first = QuizSession(provider)
        second = QuizSession(provider)
        first.answer("55+")
        assert second.current_answer() is None
        assert first.session_id != second.session_id
