"""
Builders shared by the test modules
"""
from typing import List, Optional

from certquiz.domain.clock import FixedClock
from certquiz.domain.session import CommandResult, QuizSession
from certquiz.domain.value_objects import QuestionReference, QuizConfig
from certquiz.models.question import Question

OPTIONS = ["a", "b", "c", "d"]


def make_questions(count: int, prefix: str = "q", correct: Optional[List[str]] = None) -> List[QuestionReference]:
    return [
        QuestionReference.create(f"{prefix}{i}", correct or ["a"], OPTIONS)
        for i in range(count)
    ]


def make_config(question_count: int = 3, time_limit: Optional[int] = None, **kwargs) -> QuizConfig:
    return QuizConfig.create("CCNA", question_count, time_limit=time_limit, **kwargs)


def start_result(
    clock: FixedClock,
    user_id: str = "user-1",
    question_count: int = 3,
    time_limit: Optional[int] = None,
    questions: Optional[List[QuestionReference]] = None,
    **config_kwargs,
) -> CommandResult:
    config = make_config(question_count, time_limit=time_limit, **config_kwargs)
    result = QuizSession.start_new(user_id, config, questions or make_questions(question_count), clock)
    assert result.ok, result.error
    return result


def start_session(clock: FixedClock, **kwargs) -> QuizSession:
    return start_result(clock, **kwargs).session


def make_question_row(
    question_id: str,
    exam_type: str = "CCNA",
    category: str = "routing",
    difficulty: str = "INTERMEDIATE",
    correct: Optional[List[str]] = None,
    status: str = "active",
) -> Question:
    correct = correct or ["a"]
    return Question(
        id=question_id,
        exam_type=exam_type,
        category=category,
        difficulty=difficulty,
        question_text=f"Question {question_id}",
        options=[
            {"id": option, "text": f"Option {option.upper()}", "is_correct": option in correct}
            for option in OPTIONS
        ],
        status=status,
    )
