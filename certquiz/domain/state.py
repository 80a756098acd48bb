"""
Quiz session states and their legal transitions
"""
from enum import Enum


class QuizState(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]

    def can_transition_to(self, target: "QuizState") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    QuizState.IN_PROGRESS: frozenset({QuizState.COMPLETED, QuizState.EXPIRED}),
    QuizState.COMPLETED: frozenset(),
    QuizState.EXPIRED: frozenset(),
}
