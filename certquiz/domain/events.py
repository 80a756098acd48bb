"""
Domain events emitted by the QuizSession aggregate

Events are the persisted source of truth. Payloads are stored as JSON-ready
dicts and validated against a per-type pydantic model whenever they are
replayed, so a malformed row is caught before it can build a session.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from certquiz.domain.clock import ensure_utc
from certquiz.domain.errors import CorruptedEventStreamError
from certquiz.domain.value_objects import QuestionReference, QuizConfig

# Namespace for deterministic event ids
EVENT_NAMESPACE = uuid.UUID("b3c5e0f2-7a41-4d8e-9c6b-1f2a3d4e5c60")


class EventType(str, Enum):
    SESSION_STARTED = "SessionStarted"
    ANSWER_SUBMITTED = "AnswerSubmitted"
    SESSION_COMPLETED = "SessionCompleted"
    SESSION_EXPIRED = "SessionExpired"


class SessionStartedPayload(BaseModel):
    user_id: str
    config: QuizConfig
    questions: List[QuestionReference] = Field(min_length=1)
    started_at: datetime


class AnswerSubmittedPayload(BaseModel):
    question_index: int = Field(ge=0)
    question_id: str
    selected_option_ids: List[str] = Field(min_length=1)
    answered_at: datetime


class SessionCompletedPayload(BaseModel):
    completed_at: datetime
    correct_count: int = Field(ge=0)
    total_count: int = Field(ge=1)
    score: int = Field(ge=0, le=100)


class SessionExpiredPayload(BaseModel):
    expired_at: datetime
    forced: bool = False


PAYLOAD_MODELS = {
    EventType.SESSION_STARTED: SessionStartedPayload,
    EventType.ANSWER_SUBMITTED: AnswerSubmittedPayload,
    EventType.SESSION_COMPLETED: SessionCompletedPayload,
    EventType.SESSION_EXPIRED: SessionExpiredPayload,
}


def event_id_for(session_id: str, version: int) -> str:
    """Same session and version always give the same event id"""
    return str(uuid.uuid5(EVENT_NAMESPACE, f"{session_id}:{version}"))


class DomainEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: str
    event_type: EventType
    session_id: str
    version: int = Field(ge=1)
    occurred_at: datetime
    payload: Dict[str, Any]

    @field_validator("occurred_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @classmethod
    def record(
        cls,
        event_type: EventType,
        session_id: str,
        version: int,
        occurred_at: datetime,
        payload: BaseModel,
    ) -> "DomainEvent":
        return cls(
            event_id=event_id_for(session_id, version),
            event_type=event_type,
            session_id=session_id,
            version=version,
            occurred_at=occurred_at,
            payload=payload.model_dump(mode="json"),
        )

    @classmethod
    def from_stored(
        cls,
        event_id: str,
        event_type: str,
        session_id: str,
        version: int,
        occurred_at: datetime,
        payload: Dict[str, Any],
    ) -> "DomainEvent":
        """Rebuild an event read back from storage"""
        try:
            return cls(
                event_id=event_id,
                event_type=event_type,
                session_id=session_id,
                version=version,
                occurred_at=occurred_at,
                payload=payload,
            )
        except PydanticValidationError as e:
            raise CorruptedEventStreamError(
                f"QuizSession {session_id}: unreadable event at version {version}: {e}"
            ) from e

    def parsed_payload(self) -> BaseModel:
        model = PAYLOAD_MODELS[self.event_type]
        try:
            return model.model_validate(self.payload)
        except PydanticValidationError as e:
            raise CorruptedEventStreamError(
                f"QuizSession {self.session_id}: invalid payload for "
                f"'{self.event_type.value}' at version {self.version}: {e}"
            ) from e
