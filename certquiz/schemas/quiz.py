"""
Pydantic schemas for quiz session requests and responses
"""
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional

from certquiz.domain.clock import ensure_utc
from certquiz.domain.events import DomainEvent
from certquiz.domain.session import QuizSession


class StartQuizRequest(BaseModel):
    """Request schema for starting a quiz session"""
    exam_type: str = Field(..., description="CCNA, CCNP or CCIE")
    question_count: int = Field(..., description="Number of questions (one of the allowed quiz sizes)")
    time_limit: Optional[int] = Field(None, description="Time limit in seconds; omit for an untimed quiz")
    difficulty: str = Field("MIXED", description="BEGINNER, INTERMEDIATE, ADVANCED or MIXED")
    category: Optional[str] = Field(None, max_length=100)
    enforce_sequential_answering: bool = False
    require_all_answers: bool = False
    auto_complete_when_all_answered: bool = False


class SubmitAnswerRequest(BaseModel):
    """Answer to a single question"""
    question_index: int = Field(..., description="Zero-based position of the question in the session")
    selected_option_ids: List[str] = Field(..., description="Selected option ids")


class QuizConfigView(BaseModel):
    exam_type: str
    question_count: int
    time_limit: Optional[int] = None
    difficulty: str
    category: Optional[str] = None
    enforce_sequential_answering: bool = False
    require_all_answers: bool = False
    auto_complete_when_all_answered: bool = False


class AnswerView(BaseModel):
    question_index: int
    question_id: str
    selected_option_ids: List[str]
    answered_at: datetime


class QuizSessionResponse(BaseModel):
    """Current view of a session"""
    session_id: str
    user_id: str
    state: str
    config: QuizConfigView
    question_ids: List[str]
    answers: List[AnswerView]
    answered_count: int
    total_questions: int
    current_question_index: Optional[int] = None  # next unanswered question
    started_at: datetime
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    seconds_remaining: Optional[int] = None
    version: int

    @classmethod
    def from_session(cls, session: QuizSession, now: datetime) -> "QuizSessionResponse":
        state = session.effective_state(now)
        answered = {answer.question_index for answer in session.answers}
        next_index = next((i for i in range(len(session.questions)) if i not in answered), None)
        return cls(
            session_id=session.id,
            user_id=session.user_id,
            state=state.value,
            config=QuizConfigView(**session.config.model_dump(mode="json")),
            question_ids=session.question_ids(),
            answers=[
                AnswerView(
                    question_index=a.question_index,
                    question_id=a.question_id,
                    selected_option_ids=list(a.selected_option_ids),
                    answered_at=a.answered_at,
                )
                for a in session.answers
            ],
            answered_count=session.answered_count,
            total_questions=len(session.questions),
            current_question_index=next_index if not state.is_terminal else None,
            started_at=session.started_at,
            expires_at=session.expires_at,
            completed_at=session.completed_at,
            expired_at=session.expired_at,
            seconds_remaining=session.seconds_remaining(now) if not state.is_terminal else None,
            version=session.version,
        )


class SubmitAnswerResponse(BaseModel):
    """Acknowledgement of a recorded answer"""
    session_id: str
    question_index: int
    answered_count: int
    total_questions: int
    state: str
    is_complete: bool
    version: int


class ScoreSummaryView(BaseModel):
    correct_count: int
    total_count: int
    answered_count: int
    percentage: int


class CompleteQuizResponse(BaseModel):
    """Final score of a completed session"""
    session_id: str
    state: str
    completed_at: Optional[datetime] = None
    score: ScoreSummaryView
    version: int


class AnswerOptionView(BaseModel):
    id: str
    text: str
    is_correct: bool
    was_selected: bool


class QuestionResult(BaseModel):
    """Result for one question"""
    question_index: int
    question_id: str
    question_text: Optional[str] = None
    category: str
    selected_option_ids: List[str]
    correct_option_ids: List[str]
    is_correct: bool
    answered_at: Optional[datetime] = None
    options: List[AnswerOptionView] = []


class QuizResultsResponse(BaseModel):
    """Results of a finished session"""
    session_id: str
    state: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    config: Dict[str, Any]
    score: ScoreSummaryView
    questions: List[QuestionResult]
    weak_categories: List[str]
    feedback: str


class EventResponse(BaseModel):
    """Single entry of a session's event log"""
    event_id: str
    event_type: str
    version: int
    occurred_at: datetime
    payload: Dict[str, Any]

    @classmethod
    def from_event(cls, event: DomainEvent) -> "EventResponse":
        return cls(
            event_id=event.event_id,
            event_type=event.event_type.value,
            version=event.version,
            occurred_at=ensure_utc(event.occurred_at),
            payload=event.payload,
        )
