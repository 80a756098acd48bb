"""
Quiz session API endpoints
"""
from fastapi import APIRouter, Depends
from typing import List
import logging

from certquiz.dependencies import get_current_user_id, get_quiz_session_service
from certquiz.schemas.quiz import (
    CompleteQuizResponse,
    EventResponse,
    QuizResultsResponse,
    QuizSessionResponse,
    ScoreSummaryView,
    StartQuizRequest,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
)
from certquiz.services.quiz_session_service import QuizSessionService


router = APIRouter(prefix="/api/quiz", tags=["quiz"])
logger = logging.getLogger(__name__)


@router.post("/start", response_model=QuizSessionResponse, status_code=201)
def start_quiz(
    request: StartQuizRequest,
    user_id: str = Depends(get_current_user_id),
    service: QuizSessionService = Depends(get_quiz_session_service),
):
    """
    Start a quiz session

    - Fails with 409 while the user has another session in progress
    - Questions are drawn at random from the active catalog
    - The correct answers are fixed for the lifetime of the session
    """
    session = service.start_quiz(
        user_id=user_id,
        exam_type=request.exam_type,
        question_count=request.question_count,
        time_limit=request.time_limit,
        difficulty=request.difficulty,
        category=request.category,
        enforce_sequential_answering=request.enforce_sequential_answering,
        require_all_answers=request.require_all_answers,
        auto_complete_when_all_answered=request.auto_complete_when_all_answered,
    )
    return QuizSessionResponse.from_session(session, service.clock.now())


@router.post("/{session_id}/answer", response_model=SubmitAnswerResponse)
def submit_answer(
    session_id: str,
    request: SubmitAnswerRequest,
    user_id: str = Depends(get_current_user_id),
    service: QuizSessionService = Depends(get_quiz_session_service),
):
    """
    Record the answer to one question

    Answers are final. A submission after the time limit returns 410 and
    expires the session.
    """
    session = service.submit_answer(
        session_id, user_id, request.question_index, request.selected_option_ids
    )
    return SubmitAnswerResponse(
        session_id=session.id,
        question_index=request.question_index,
        answered_count=session.answered_count,
        total_questions=len(session.questions),
        state=session.state.value,
        is_complete=session.is_terminal,
        version=session.version,
    )


@router.post("/{session_id}/complete", response_model=CompleteQuizResponse)
def complete_quiz(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuizSessionService = Depends(get_quiz_session_service),
):
    """Finish the session and return its score"""
    session = service.complete_quiz(session_id, user_id)
    return CompleteQuizResponse(
        session_id=session.id,
        state=session.state.value,
        completed_at=session.completed_at,
        score=ScoreSummaryView(**session.score().model_dump()),
        version=session.version,
    )


@router.get("/{session_id}", response_model=QuizSessionResponse)
def get_quiz_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuizSessionService = Depends(get_quiz_session_service),
):
    session = service.get_session(session_id, user_id)
    return QuizSessionResponse.from_session(session, service.clock.now())


@router.get("/{session_id}/results", response_model=QuizResultsResponse)
def get_quiz_results(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuizSessionService = Depends(get_quiz_session_service),
):
    """
    Results of a completed or expired session

    Returns:
    - Score summary
    - Per-question breakdown with the correct options
    - Weak categories and feedback
    """
    results = service.get_results(session_id, user_id)
    return QuizResultsResponse(**results)


@router.get("/{session_id}/events", response_model=List[EventResponse])
def get_quiz_events(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuizSessionService = Depends(get_quiz_session_service),
):
    """Audit log of the session, oldest first"""
    events = service.get_events(session_id, user_id)
    logger.info(f"Returning {len(events)} events for session {session_id}")
    return [EventResponse.from_event(event) for event in events]
