"""
Administrative API endpoints
"""
from fastapi import APIRouter, Depends
import logging

from certquiz.dependencies import get_quiz_session_service
from certquiz.schemas.admin import ExpireSessionResponse, SystemStats
from certquiz.services.quiz_session_service import QuizSessionService

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.post("/quiz/{session_id}/expire", response_model=ExpireSessionResponse)
def expire_quiz_session(
    session_id: str,
    service: QuizSessionService = Depends(get_quiz_session_service),
):
    """
    Force a session into EXPIRED

    Works before the time limit is reached; a session that already ended
    returns 409.
    """
    logger.info(f"Admin expiry requested for session {session_id}")
    session = service.expire_session(session_id)
    return ExpireSessionResponse(session_id=session.id, state=session.state.value, version=session.version)


@router.get("/stats", response_model=SystemStats)
def get_system_stats(service: QuizSessionService = Depends(get_quiz_session_service)):
    """Total and in-progress session counts"""
    return SystemStats(**service.get_stats())
