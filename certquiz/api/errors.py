"""
HTTP status codes for domain failures
"""
from certquiz.domain.errors import (
    ActiveSessionError,
    AuthorizationError,
    ConcurrentModificationError,
    DuplicateAnswerError,
    InsufficientQuestionsError,
    InvalidStateError,
    QuizError,
    SessionExpiredError,
    SessionNotFoundError,
    ValidationError,
)

STATUS_CODES = {
    ValidationError: 400,
    AuthorizationError: 403,
    SessionNotFoundError: 404,
    ActiveSessionError: 409,
    DuplicateAnswerError: 409,
    InvalidStateError: 409,
    ConcurrentModificationError: 409,
    SessionExpiredError: 410,
    InsufficientQuestionsError: 422,
}


def status_code_for(error: QuizError) -> int:
    """Status of the closest mapped class in the error's hierarchy"""
    for cls in type(error).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


def error_body(code: str, message: str) -> dict:
    return {"error": code, "message": message}
