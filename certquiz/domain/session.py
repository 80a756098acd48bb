"""
QuizSession aggregate root

Every command is a pure function of the current session, its input and a
clock. It returns a ``CommandResult`` holding the next immutable session and
the events that produced it. Business-rule violations come back as the
result's ``error``; nothing here raises for them.

Commands first record their event and then derive the next state through
``apply``, the same method replay uses, so a session rebuilt from its events
is equal to the one the commands produced.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from certquiz.domain.clock import Clock, ensure_utc
from certquiz.domain.errors import (
    CorruptedEventStreamError,
    DuplicateAnswerError,
    IncompleteQuizError,
    InvalidStateError,
    OutOfOrderAnswerError,
    QuestionCountMismatchError,
    QuizError,
    SessionExpiredError,
    SessionNotExpiredError,
    ValidationError,
)
from certquiz.domain.events import (
    AnswerSubmittedPayload,
    DomainEvent,
    EventType,
    SessionCompletedPayload,
    SessionExpiredPayload,
    SessionStartedPayload,
)
from certquiz.domain.scoring import ScoreSummary, score_answers
from certquiz.domain.state import QuizState
from certquiz.domain.value_objects import QuestionReference, QuizConfig, new_session_id


class Answer(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_index: int
    question_id: str
    selected_option_ids: Tuple[str, ...]
    answered_at: datetime


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of a command

    ``session`` is the resulting session. A failure may still carry events:
    a submit after the time limit fails with ``SessionExpiredError`` while
    also producing the expired session and its ``SessionExpired`` event,
    which the caller must persist.
    """

    session: Optional["QuizSession"]
    events: Tuple[DomainEvent, ...] = ()
    error: Optional[QuizError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def changed(self) -> bool:
        return bool(self.events)

    @classmethod
    def success(cls, session: "QuizSession", events: Sequence[DomainEvent] = ()) -> "CommandResult":
        return cls(session=session, events=tuple(events))

    @classmethod
    def failure(
        cls,
        error: QuizError,
        session: Optional["QuizSession"] = None,
        events: Sequence[DomainEvent] = (),
    ) -> "CommandResult":
        return cls(session=session, events=tuple(events), error=error)


class QuizSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    config: QuizConfig
    questions: Tuple[QuestionReference, ...]
    state: QuizState = QuizState.IN_PROGRESS
    answers: Tuple[Answer, ...] = ()
    started_at: datetime
    completed_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    version: int = 0

    # ------------------------------------------------------------------
    # Derived reads
    # ------------------------------------------------------------------

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.config.time_limit is None:
            return None
        return self.started_at + timedelta(seconds=self.config.time_limit)

    def is_time_limit_reached(self, now: datetime) -> bool:
        expires_at = self.expires_at
        return expires_at is not None and ensure_utc(now) >= expires_at

    def effective_state(self, now: datetime) -> QuizState:
        """State as of ``now``; a timed-out session reads as expired before the sweep writes it"""
        if self.state is QuizState.IN_PROGRESS and self.is_time_limit_reached(now):
            return QuizState.EXPIRED
        return self.state

    def seconds_remaining(self, now: datetime) -> Optional[int]:
        expires_at = self.expires_at
        if expires_at is None:
            return None
        return max(0, int((expires_at - ensure_utc(now)).total_seconds()))

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    def answer_for(self, question_index: int) -> Optional[Answer]:
        for answer in self.answers:
            if answer.question_index == question_index:
                return answer
        return None

    def question_ids(self) -> List[str]:
        return [question.question_id for question in self.questions]

    def score(self) -> ScoreSummary:
        return score_answers(self.questions, self.answers)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @classmethod
    def start_new(
        cls,
        user_id: str,
        config: QuizConfig,
        questions: Sequence[QuestionReference],
        clock: Clock,
        session_id: Optional[str] = None,
    ) -> CommandResult:
        owner = str(user_id).strip() if user_id is not None else ""
        if not owner:
            return CommandResult.failure(ValidationError("A user id is required to start a quiz"))

        refs = list(questions)
        if len(refs) != config.question_count:
            return CommandResult.failure(QuestionCountMismatchError(config.question_count, len(refs)))

        if any(not isinstance(ref, QuestionReference) or not ref.correct_option_ids for ref in refs):
            return CommandResult.failure(
                ValidationError("Every question reference needs an id and at least one correct option")
            )

        ids = [ref.question_id for ref in refs]
        if len(set(ids)) != len(ids):
            return CommandResult.failure(ValidationError("Duplicate question detected"))

        now = ensure_utc(clock.now())
        sid = session_id or new_session_id()
        event = DomainEvent.record(
            EventType.SESSION_STARTED,
            sid,
            1,
            now,
            SessionStartedPayload(user_id=owner, config=config, questions=refs, started_at=now),
        )
        return CommandResult.success(cls._from_started(event), (event,))

    def submit_answer(
        self,
        question_index: int,
        selected_option_ids: Iterable[str],
        clock: Clock,
    ) -> CommandResult:
        if self.state is not QuizState.IN_PROGRESS:
            return CommandResult.failure(
                InvalidStateError(f"Cannot answer a quiz session that is {self.state.value}"),
                session=self,
            )

        now = ensure_utc(clock.now())
        if self.is_time_limit_reached(now):
            return self._expire_on_breach(now)

        if isinstance(question_index, bool) or not isinstance(question_index, int) \
                or not 0 <= question_index < len(self.questions):
            return CommandResult.failure(
                ValidationError(
                    f"Question index {question_index} is out of range "
                    f"(0-{len(self.questions) - 1})"
                ),
                session=self,
            )

        if self.answer_for(question_index) is not None:
            return CommandResult.failure(DuplicateAnswerError(question_index), session=self)

        if isinstance(selected_option_ids, str):
            selected_option_ids = [selected_option_ids]
        selected = [str(option).strip() for option in selected_option_ids]
        if not selected or any(not option for option in selected):
            return CommandResult.failure(
                ValidationError("Answer must include at least one option"), session=self
            )
        if len(set(selected)) != len(selected):
            return CommandResult.failure(
                ValidationError("Answer contains duplicate option selections"), session=self
            )

        question = self.questions[question_index]
        invalid = [option for option in selected if not question.has_option(option)]
        if invalid:
            return CommandResult.failure(
                ValidationError(
                    f"Options {', '.join(invalid)} do not belong to question {question.question_id}"
                ),
                session=self,
            )

        if self.config.enforce_sequential_answering and question_index != self.answered_count:
            return CommandResult.failure(
                OutOfOrderAnswerError(self.answered_count, question_index), session=self
            )

        submitted = self._record(
            EventType.ANSWER_SUBMITTED,
            now,
            AnswerSubmittedPayload(
                question_index=question_index,
                question_id=question.question_id,
                selected_option_ids=sorted(selected),
                answered_at=now,
            ),
        )
        session = self.apply(submitted)
        events = [submitted]

        if self.config.auto_complete_when_all_answered and session.answered_count == len(session.questions):
            completed = session._record(
                EventType.SESSION_COMPLETED, now, session._completion_payload(now)
            )
            session = session.apply(completed)
            events.append(completed)

        return CommandResult.success(session, events)

    def complete(self, clock: Clock) -> CommandResult:
        if self.state is not QuizState.IN_PROGRESS:
            return CommandResult.failure(
                InvalidStateError(f"Cannot complete a quiz session that is {self.state.value}"),
                session=self,
            )

        now = ensure_utc(clock.now())
        if self.is_time_limit_reached(now):
            return self._expire_on_breach(now)

        unanswered = len(self.questions) - self.answered_count
        if self.config.require_all_answers and unanswered > 0:
            return CommandResult.failure(IncompleteQuizError(unanswered), session=self)

        event = self._record(EventType.SESSION_COMPLETED, now, self._completion_payload(now))
        return CommandResult.success(self.apply(event), (event,))

    def expire(self, clock: Clock, force: bool = False) -> CommandResult:
        """
        Move the session to EXPIRED

        Without ``force`` the time limit must have been reached; ``force`` is
        for administrative expiry.
        """
        if self.state is not QuizState.IN_PROGRESS:
            return CommandResult.failure(
                InvalidStateError(f"Cannot expire a quiz session that is {self.state.value}"),
                session=self,
            )

        now = ensure_utc(clock.now())
        reached = self.is_time_limit_reached(now)
        if not reached and not force:
            return CommandResult.failure(SessionNotExpiredError(self.id), session=self)

        event = self._record(
            EventType.SESSION_EXPIRED,
            now,
            SessionExpiredPayload(expired_at=now, forced=not reached),
        )
        return CommandResult.success(self.apply(event), (event,))

    def expire_if_due(self, clock: Clock) -> CommandResult:
        """Expire when the time limit has passed, otherwise return an unchanged result"""
        if self.state is QuizState.IN_PROGRESS and self.is_time_limit_reached(clock.now()):
            return self.expire(clock)
        return CommandResult.success(self)

    def _expire_on_breach(self, now: datetime) -> CommandResult:
        event = self._record(EventType.SESSION_EXPIRED, now, SessionExpiredPayload(expired_at=now))
        return CommandResult.failure(
            SessionExpiredError(self.id, self.expires_at),
            session=self.apply(event),
            events=(event,),
        )

    def _record(self, event_type: EventType, now: datetime, payload: BaseModel) -> DomainEvent:
        return DomainEvent.record(event_type, self.id, self.version + 1, now, payload)

    def _completion_payload(self, now: datetime) -> SessionCompletedPayload:
        summary = self.score()
        return SessionCompletedPayload(
            completed_at=now,
            correct_count=summary.correct_count,
            total_count=summary.total_count,
            score=summary.percentage,
        )

    # ------------------------------------------------------------------
    # Event application and replay
    # ------------------------------------------------------------------

    @classmethod
    def _from_started(cls, event: DomainEvent) -> "QuizSession":
        if event.event_type is not EventType.SESSION_STARTED or event.version != 1:
            raise CorruptedEventStreamError(
                f"QuizSession {event.session_id}: history must begin with SessionStarted "
                f"at version 1, got {event.event_type.value} at version {event.version}"
            )

        payload = event.parsed_payload()
        try:
            questions = tuple(
                QuestionReference.create(q.question_id, q.correct_option_ids, q.option_ids)
                for q in payload.questions
            )
        except ValidationError as e:
            raise CorruptedEventStreamError(f"QuizSession {event.session_id}: {e.message}") from e

        if len(questions) != payload.config.question_count:
            raise CorruptedEventStreamError(
                f"QuizSession {event.session_id}: started with {len(questions)} questions "
                f"but configured for {payload.config.question_count}"
            )

        return cls(
            id=event.session_id,
            user_id=payload.user_id,
            config=payload.config,
            questions=questions,
            started_at=ensure_utc(payload.started_at),
            version=1,
        )

    def apply(self, event: DomainEvent) -> "QuizSession":
        """
        Return the session with ``event`` applied

        Events at or below the current version are already reflected and are
        skipped, which makes replaying an overlapping history harmless.
        """
        if event.session_id != self.id:
            raise CorruptedEventStreamError(
                f"QuizSession {self.id}: received event for session {event.session_id}"
            )
        if event.version <= self.version:
            return self
        if event.version != self.version + 1:
            raise CorruptedEventStreamError(
                f"QuizSession {self.id}: expected version {self.version + 1}, got {event.version}"
            )

        if event.event_type is EventType.SESSION_STARTED:
            raise CorruptedEventStreamError(f"QuizSession {self.id}: started twice")

        if self.state is not QuizState.IN_PROGRESS:
            raise CorruptedEventStreamError(
                f"QuizSession {self.id}: {event.event_type.value} after the session was {self.state.value}"
            )

        payload = event.parsed_payload()

        if event.event_type is EventType.ANSWER_SUBMITTED:
            index = payload.question_index
            if index >= len(self.questions) or self.answer_for(index) is not None \
                    or self.questions[index].question_id != payload.question_id:
                raise CorruptedEventStreamError(
                    f"QuizSession {self.id}: answer for question {index} cannot be applied"
                )
            answer = Answer(
                question_index=index,
                question_id=payload.question_id,
                selected_option_ids=tuple(sorted(payload.selected_option_ids)),
                answered_at=ensure_utc(payload.answered_at),
            )
            answers = tuple(sorted(self.answers + (answer,), key=lambda a: a.question_index))
            return self.model_copy(update={"answers": answers, "version": event.version})

        if event.event_type is EventType.SESSION_COMPLETED:
            return self.model_copy(
                update={
                    "state": QuizState.COMPLETED,
                    "completed_at": ensure_utc(payload.completed_at),
                    "version": event.version,
                }
            )

        return self.model_copy(
            update={
                "state": QuizState.EXPIRED,
                "expired_at": ensure_utc(payload.expired_at),
                "version": event.version,
            }
        )

    @classmethod
    def replay(
        cls,
        events: Iterable[DomainEvent],
        baseline: Optional["QuizSession"] = None,
    ) -> Optional["QuizSession"]:
        """
        Rebuild a session from ``baseline`` (a snapshot, or nothing) plus events

        Returns ``None`` when there is neither a baseline nor any event.
        """
        session = baseline
        for event in sorted(events, key=lambda e: e.version):
            if session is None:
                session = cls._from_started(event)
            else:
                session = session.apply(event)
        return session

    def to_snapshot(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "QuizSession":
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise CorruptedEventStreamError(f"Unreadable quiz session snapshot: {e}") from e
