"""
Quiz session domain: value objects, state machine, events and the aggregate
"""
from certquiz.domain.clock import Clock, FixedClock, SystemClock
from certquiz.domain.events import DomainEvent, EventType
from certquiz.domain.scoring import ScoreSummary
from certquiz.domain.session import Answer, CommandResult, QuizSession
from certquiz.domain.state import QuizState
from certquiz.domain.value_objects import (
    QUIZ_SIZES,
    Difficulty,
    ExamType,
    QuestionReference,
    QuizConfig,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "DomainEvent",
    "EventType",
    "ScoreSummary",
    "Answer",
    "CommandResult",
    "QuizSession",
    "QuizState",
    "QUIZ_SIZES",
    "Difficulty",
    "ExamType",
    "QuestionReference",
    "QuizConfig",
]
