"""
Error taxonomy for quiz sessions

Business-rule violations are ``QuizError`` subclasses. Aggregate commands hand
them back inside a ``CommandResult``; services raise them and the API layer maps
them to HTTP responses. ``RepositoryError`` and ``CorruptedEventStreamError``
sit outside the hierarchy: the first is an infrastructure failure that callers
may retry, the second means persisted history cannot be trusted.
"""
from datetime import datetime
from typing import Optional


class QuizError(Exception):
    """Base class for expected quiz failures"""

    code = "QUIZ_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(QuizError):
    """Malformed input supplied by the caller"""

    code = "VALIDATION_ERROR"


class QuestionCountMismatchError(ValidationError):
    code = "QUESTION_COUNT_MISMATCH"

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Question count mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class IncompleteQuizError(ValidationError):
    code = "INCOMPLETE_QUIZ"

    def __init__(self, unanswered_count: int):
        super().__init__(f"Cannot complete quiz with {unanswered_count} unanswered questions")
        self.unanswered_count = unanswered_count


class OutOfOrderAnswerError(ValidationError):
    code = "OUT_OF_ORDER_ANSWER"

    def __init__(self, expected_index: int, actual_index: int):
        super().__init__(f"Expected an answer for question {expected_index}, got {actual_index}")
        self.expected_index = expected_index
        self.actual_index = actual_index


class InvalidStateError(QuizError):
    """Command is not legal in the session's current state"""

    code = "INVALID_STATE"


class SessionNotExpiredError(InvalidStateError):
    code = "SESSION_NOT_EXPIRED"

    def __init__(self, session_id: str):
        super().__init__(f"Quiz session {session_id} has not reached its time limit")
        self.session_id = session_id


class DuplicateAnswerError(QuizError):
    code = "DUPLICATE_ANSWER"

    def __init__(self, question_index: int):
        super().__init__(f"Question {question_index} has already been answered")
        self.question_index = question_index


class SessionExpiredError(QuizError):
    code = "SESSION_EXPIRED"

    def __init__(self, session_id: str, expired_at: Optional[datetime] = None):
        super().__init__(f"Quiz session {session_id} has exceeded its time limit")
        self.session_id = session_id
        self.expired_at = expired_at


class ConcurrentModificationError(QuizError):
    """Stored version moved on since the caller loaded the session"""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, session_id: str, expected_version: int, actual_version: Optional[int] = None):
        detail = f"expected version {expected_version}"
        if actual_version is not None:
            detail += f", found {actual_version}"
        super().__init__(f"Concurrent modification of quiz session {session_id} ({detail})")
        self.session_id = session_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class SessionNotFoundError(QuizError):
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str):
        super().__init__(f"Quiz session not found: {session_id}")
        self.session_id = session_id


class ActiveSessionError(QuizError):
    code = "ACTIVE_SESSION_EXISTS"

    def __init__(self, user_id: str, session_id: Optional[str] = None):
        super().__init__(
            "User already has an active session. "
            "Complete the current session before starting a new one."
        )
        self.user_id = user_id
        self.session_id = session_id


class AuthorizationError(QuizError):
    code = "UNAUTHORIZED"


class InsufficientQuestionsError(QuizError):
    code = "INSUFFICIENT_QUESTIONS"

    def __init__(self, requested: int, available: int):
        super().__init__(
            f"Insufficient questions available. Requested: {requested}, Available: {available}"
        )
        self.requested = requested
        self.available = available


class RepositoryError(Exception):
    """Persistence infrastructure failure (connection loss, driver errors)"""

    def __init__(self, operation: str, cause: str):
        super().__init__(f"Quiz repository {operation} failed: {cause}")
        self.operation = operation


class CorruptedEventStreamError(Exception):
    """Persisted events or snapshots cannot be replayed into a valid session"""
