"""
Immutable value objects for quiz sessions
"""
import uuid
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from certquiz.domain.errors import ValidationError

# Quiz sizes offered to users
QUIZ_SIZES: Tuple[int, ...] = (1, 3, 5, 10)


class ExamType(str, Enum):
    CCNA = "CCNA"
    CCNP = "CCNP"
    CCIE = "CCIE"


class Difficulty(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    MIXED = "MIXED"


def new_session_id() -> str:
    return str(uuid.uuid4())


def normalize_ids(values: Iterable[Any]) -> Tuple[str, ...]:
    """Deduplicate, strip and sort identifiers so equal sets compare equal"""
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    cleaned = {str(value).strip() for value in values}
    cleaned.discard("")
    return tuple(sorted(cleaned))


def _coerce_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Unknown {label} '{value}'. Allowed: {allowed}")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class QuizConfig(BaseModel):
    """Configuration chosen when a session starts"""

    model_config = ConfigDict(frozen=True)

    exam_type: ExamType
    question_count: int
    time_limit: Optional[int] = None  # seconds
    difficulty: Difficulty = Difficulty.MIXED
    category: Optional[str] = None
    enforce_sequential_answering: bool = False
    require_all_answers: bool = False
    auto_complete_when_all_answered: bool = False

    @classmethod
    def create(
        cls,
        exam_type,
        question_count: int,
        time_limit: Optional[int] = None,
        difficulty=Difficulty.MIXED,
        category: Optional[str] = None,
        enforce_sequential_answering: bool = False,
        require_all_answers: bool = False,
        auto_complete_when_all_answered: bool = False,
        allowed_question_counts: Iterable[int] = QUIZ_SIZES,
    ) -> "QuizConfig":
        """
        Validate and build a configuration

        Raises:
            ValidationError: unknown exam type or difficulty, a question count
                outside ``allowed_question_counts``, or a non-positive time limit
        """
        exam = _coerce_enum(ExamType, exam_type, "exam type")
        level = _coerce_enum(Difficulty, difficulty if difficulty is not None else Difficulty.MIXED, "difficulty")

        allowed = tuple(sorted(allowed_question_counts))
        if not _is_int(question_count) or question_count <= 0:
            raise ValidationError("Question count must be a positive integer")
        if question_count not in allowed:
            raise ValidationError(
                f"Question count {question_count} is not allowed. "
                f"Choose one of: {', '.join(str(size) for size in allowed)}"
            )

        if time_limit is not None and (not _is_int(time_limit) or time_limit <= 0):
            raise ValidationError("Time limit must be a positive number of seconds")

        if category is not None:
            category = category.strip() or None

        return cls(
            exam_type=exam,
            question_count=question_count,
            time_limit=time_limit,
            difficulty=level,
            category=category,
            enforce_sequential_answering=enforce_sequential_answering,
            require_all_answers=require_all_answers,
            auto_complete_when_all_answered=auto_complete_when_all_answered,
        )

    @property
    def is_timed(self) -> bool:
        return self.time_limit is not None


class QuestionReference(BaseModel):
    """
    A question as seen by one session

    The correct options are captured when the session starts so that later
    edits to the question cannot change how this session is scored.
    """

    model_config = ConfigDict(frozen=True)

    question_id: str
    correct_option_ids: Tuple[str, ...]
    option_ids: Tuple[str, ...] = ()

    @field_validator("correct_option_ids", "option_ids", mode="before")
    @classmethod
    def _normalize(cls, value):
        return normalize_ids(value)

    @classmethod
    def create(
        cls,
        question_id,
        correct_option_ids: Iterable[Any],
        option_ids: Iterable[Any] = (),
    ) -> "QuestionReference":
        qid = str(question_id).strip() if question_id is not None else ""
        if not qid:
            raise ValidationError("Question reference requires a question id")

        correct = normalize_ids(correct_option_ids)
        if not correct:
            raise ValidationError(f"Question {qid} must have at least one correct option")

        options = normalize_ids(option_ids)
        if options and not set(correct).issubset(options):
            raise ValidationError(f"Question {qid} lists correct options that are not among its options")

        return cls(question_id=qid, correct_option_ids=correct, option_ids=options)

    def has_option(self, option_id: str) -> bool:
        # Without a known option list every id is accepted
        return not self.option_ids or option_id in self.option_ids

    def is_correct(self, selected_option_ids: Iterable[str]) -> bool:
        return set(selected_option_ids) == set(self.correct_option_ids)
