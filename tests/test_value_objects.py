"""
Tests for QuizConfig, QuestionReference, the state machine and scoring helpers
"""
import pytest

from certquiz.domain.errors import ValidationError
from certquiz.domain.scoring import is_answer_correct, score_percentage
from certquiz.domain.state import QuizState
from certquiz.domain.value_objects import Difficulty, ExamType, QuestionReference, QuizConfig


class TestQuizConfig:
    def test_defaults(self):
        config = QuizConfig.create("CCNA", 5)

        assert config.exam_type is ExamType.CCNA
        assert config.question_count == 5
        assert config.time_limit is None
        assert config.difficulty is Difficulty.MIXED
        assert not config.is_timed
        assert not config.enforce_sequential_answering
        assert not config.require_all_answers
        assert not config.auto_complete_when_all_answered

    def test_enum_values_are_case_insensitive(self):
        config = QuizConfig.create("ccnp", 3, difficulty="advanced")

        assert config.exam_type is ExamType.CCNP
        assert config.difficulty is Difficulty.ADVANCED

    @pytest.mark.parametrize("count", [0, -1, 2, 4, 11])
    def test_rejects_question_count_outside_allowed_sizes(self, count):
        with pytest.raises(ValidationError):
            QuizConfig.create("CCNA", count)

    def test_custom_allowed_sizes(self):
        config = QuizConfig.create("CCNA", 20, allowed_question_counts=[20, 40])
        assert config.question_count == 20

        with pytest.raises(ValidationError):
            QuizConfig.create("CCNA", 10, allowed_question_counts=[20, 40])

    @pytest.mark.parametrize("limit", [0, -30])
    def test_rejects_non_positive_time_limit(self, limit):
        with pytest.raises(ValidationError, match="Time limit"):
            QuizConfig.create("CCNA", 3, time_limit=limit)

    def test_unknown_exam_type(self):
        with pytest.raises(ValidationError, match="exam type"):
            QuizConfig.create("AWS", 3)

    def test_unknown_difficulty(self):
        with pytest.raises(ValidationError, match="difficulty"):
            QuizConfig.create("CCNA", 3, difficulty="IMPOSSIBLE")

    def test_blank_category_is_dropped(self):
        assert QuizConfig.create("CCNA", 3, category="   ").category is None
        assert QuizConfig.create("CCNA", 3, category=" routing ").category == "routing"

    def test_is_immutable(self):
        config = QuizConfig.create("CCNA", 3)
        with pytest.raises(Exception):
            config.question_count = 5


class TestQuestionReference:
    def test_normalizes_option_ids(self):
        ref = QuestionReference.create("q1", [" b", "a", "b"], ["d", "c", "b", "a"])

        assert ref.correct_option_ids == ("a", "b")
        assert ref.option_ids == ("a", "b", "c", "d")

    def test_requires_question_id(self):
        with pytest.raises(ValidationError):
            QuestionReference.create("  ", ["a"])

    def test_requires_a_correct_option(self):
        with pytest.raises(ValidationError, match="at least one correct option"):
            QuestionReference.create("q1", [])

    def test_correct_options_must_be_known_options(self):
        with pytest.raises(ValidationError):
            QuestionReference.create("q1", ["e"], ["a", "b"])

    def test_option_membership(self):
        ref = QuestionReference.create("q1", ["a"], ["a", "b"])
        assert ref.has_option("b")
        assert not ref.has_option("z")

        # No option list: any id is accepted
        assert QuestionReference.create("q2", ["a"]).has_option("z")

    def test_correctness_is_exact_set_equality(self):
        ref = QuestionReference.create("q1", ["a", "c"], ["a", "b", "c", "d"])

        assert ref.is_correct(["c", "a"])
        assert not ref.is_correct(["a"])
        assert not ref.is_correct(["a", "b", "c"])


class TestQuizState:
    def test_transitions_only_leave_in_progress(self):
        assert QuizState.IN_PROGRESS.can_transition_to(QuizState.COMPLETED)
        assert QuizState.IN_PROGRESS.can_transition_to(QuizState.EXPIRED)
        assert not QuizState.COMPLETED.can_transition_to(QuizState.EXPIRED)
        assert not QuizState.EXPIRED.can_transition_to(QuizState.COMPLETED)
        assert not QuizState.IN_PROGRESS.can_transition_to(QuizState.IN_PROGRESS)

    def test_terminal_states(self):
        assert not QuizState.IN_PROGRESS.is_terminal
        assert QuizState.COMPLETED.is_terminal
        assert QuizState.EXPIRED.is_terminal


class TestScoringHelpers:
    @pytest.mark.parametrize(
        "correct,total,expected",
        [(0, 3, 0), (1, 3, 33), (2, 3, 67), (1, 2, 50), (1, 8, 13), (3, 3, 100), (0, 0, 0)],
    )
    def test_percentage_rounds_half_up(self, correct, total, expected):
        assert score_percentage(correct, total) == expected

    def test_answer_correctness(self):
        assert is_answer_correct(["b", "a"], ["a", "b"])
        assert not is_answer_correct(["a"], ["a", "b"])
        assert not is_answer_correct([], [])
