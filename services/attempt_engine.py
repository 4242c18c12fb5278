# services/attempt_engine.py
"""Exam attempt lifecycle.

An `AttemptSession` drives one student through one exam set:

    NOT_STARTED -> IN_PROGRESS -> SUBMITTING -> COMPLETED
                        |              |
                        |              +-> SUBMIT_FAILED -> SUBMITTING (retry)
                        +-> ABANDONED

Sessions run on a single asyncio loop, so `record_answer`, `tick` and
`submit` never interleave inside a step. The countdown is an asyncio task
owned by the session and is cancelled on every transition out of
IN_PROGRESS.
"""
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional
import asyncio
import logging
import uuid

from models.exam_attempt import UNANSWERED, AttemptAnswer, ExamAttempt
from models.exam_set import ExamSet
from models.question import Question
from services.errors import (
    AuthenticationRequiredError,
    EmptyExamError,
    InactiveExamError,
    InvalidStateError,
    NotFoundError,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMIT_FAILED = "submit_failed"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


def score_answers(questions: List[Question], recorded: Dict[str, int]) -> int:
    """One point per question whose recorded answer is exactly the answer key."""
    return sum(1 for q in questions if recorded.get(q.id, UNANSWERED) == q.correctAnswer)


class AttemptSession:
    def __init__(
        self,
        exam_set: ExamSet,
        gateway,
        student_id: Optional[str] = None,
        on_finished: Optional[Callable[["AttemptSession"], None]] = None,
    ):
        self.gateway = gateway
        self.exam_set_id = exam_set.id
        self.exam_title = exam_set.title
        # Later edits to the exam set do not reach a running attempt.
        self.questions: List[Question] = exam_set.ordered_questions()
        self._question_ids = {q.id for q in self.questions}
        self.time_limit_seconds = exam_set.timeLimit * 60 if exam_set.timeLimit else None
        self.remaining_seconds = self.time_limit_seconds
        self.attempt = ExamAttempt(
            id=str(uuid.uuid4()),
            studentId=student_id,
            examSetId=exam_set.id,
            totalQuestions=len(self.questions),
        )
        self.state = AttemptState.NOT_STARTED
        self.current_index = 0
        self.last_error: Optional[Exception] = None
        self._expired = False
        self._pending: Optional[ExamAttempt] = None
        self._inflight: Optional[asyncio.Future] = None
        self._timer: Optional[asyncio.Task] = None
        self._on_finished = on_finished

    @property
    def id(self) -> str:
        return self.attempt.id

    @property
    def student_id(self) -> Optional[str]:
        return self.attempt.studentId

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_index]

    @property
    def answered_count(self) -> int:
        return sum(1 for a in self.attempt.answers if a.selectedAnswer != UNANSWERED)

    @property
    def time_remaining(self) -> Optional[int]:
        return self.remaining_seconds

    @property
    def computed_score(self) -> Optional[int]:
        """Score fixed at submit time, kept across failed writes."""
        return self._pending.score if self._pending else None

    def recorded_answers(self) -> Dict[str, int]:
        return {a.questionId: a.selectedAnswer for a in self.attempt.answers}

    def begin(self) -> None:
        if self.state is not AttemptState.NOT_STARTED:
            raise InvalidStateError(f"Attempt {self.id} has already started")
        self.attempt = self.attempt.model_copy(update={"startTime": datetime.utcnow()})
        self.state = AttemptState.IN_PROGRESS
        logger.info(
            f"Attempt {self.id} started: exam={self.exam_set_id} student={self.student_id} "
            f"questions={self.question_count} limit={self.time_limit_seconds}s"
        )

    # Answers

    def record_answer(self, question_id: str, selected_answer: int) -> None:
        if self.state is not AttemptState.IN_PROGRESS:
            raise InvalidStateError(f"Cannot answer while the attempt is {self.state.value}")
        if self._expired:
            raise InvalidStateError("Time is up, answers can no longer be changed")
        if question_id not in self._question_ids:
            raise NotFoundError(f"Question {question_id} is not part of this exam")
        for answer in self.attempt.answers:
            if answer.questionId == question_id:
                answer.selectedAnswer = selected_answer
                return
        self.attempt.answers.append(AttemptAnswer(questionId=question_id, selectedAnswer=selected_answer))

    # Navigation

    def go_to(self, index: int) -> Question:
        self.current_index = min(max(index, 0), self.question_count - 1)
        return self.current_question

    def next(self) -> Question:
        return self.go_to(self.current_index + 1)

    def previous(self) -> Question:
        return self.go_to(self.current_index - 1)

    # Countdown

    def start_timer(self, interval: float) -> None:
        if self.remaining_seconds is None or interval <= 0 or self._timer is not None:
            return
        self._timer = asyncio.get_running_loop().create_task(self._run_timer(interval))

    async def _run_timer(self, interval: float) -> None:
        while self.state is AttemptState.IN_PROGRESS and not self._expired:
            await asyncio.sleep(interval)
            try:
                await self.tick()
            except Exception as e:
                self.last_error = e
                logger.exception(f"Automatic submit of attempt {self.id} failed: {e}")
                return

    def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        # The timer may be the task running this very submit.
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()

    async def tick(self) -> Optional[int]:
        if self.state is not AttemptState.IN_PROGRESS or self.remaining_seconds is None or self._expired:
            return self.remaining_seconds
        self.remaining_seconds = max(self.remaining_seconds - 1, 0)
        if self.remaining_seconds == 0:
            self._expired = True
            logger.info(f"Attempt {self.id} ran out of time, submitting")
            await self.submit()
        return self.remaining_seconds

    # Submission

    def _finalize(self) -> ExamAttempt:
        recorded = self.recorded_answers()
        answers = [
            AttemptAnswer(questionId=q.id, selectedAnswer=recorded.get(q.id, UNANSWERED))
            for q in self.questions
        ]
        end_time = max(datetime.utcnow(), self.attempt.startTime)
        return self.attempt.model_copy(update={
            "answers": answers,
            "score": score_answers(self.questions, recorded),
            "endTime": end_time,
            "isCompleted": True,
        })

    async def submit(self) -> ExamAttempt:
        if self.state is AttemptState.COMPLETED:
            return self.attempt
        if self._inflight is not None:
            return await asyncio.shield(self._inflight)
        if self.state not in (AttemptState.IN_PROGRESS, AttemptState.SUBMIT_FAILED):
            raise InvalidStateError(f"Cannot submit while the attempt is {self.state.value}")
        if not self.student_id:
            raise AuthenticationRequiredError("Sign in as a student to submit this exam")
        if self._pending is None:
            self._pending = self._finalize()
        self._stop_timer()
        self.state = AttemptState.SUBMITTING
        self._inflight = asyncio.ensure_future(self._persist(self._pending))
        return await asyncio.shield(self._inflight)

    async def _persist(self, attempt: ExamAttempt) -> ExamAttempt:
        try:
            await self.gateway.insert_attempt(attempt)
        except Exception as e:
            self.state = AttemptState.SUBMIT_FAILED
            self.last_error = e
            logger.error(f"Submitting attempt {self.id} failed, kept score {attempt.score} for retry: {e}")
            raise
        finally:
            self._inflight = None
        self.attempt = attempt
        self.state = AttemptState.COMPLETED
        self.last_error = None
        logger.info(f"Attempt {self.id} completed: score {attempt.score}/{attempt.totalQuestions}")
        if self._on_finished:
            self._on_finished(self)
        return attempt

    def abandon(self) -> None:
        if self.state in (AttemptState.SUBMITTING, AttemptState.COMPLETED):
            raise InvalidStateError(f"Cannot abandon an attempt that is {self.state.value}")
        self._stop_timer()
        self.state = AttemptState.ABANDONED
        logger.info(f"Attempt {self.id} abandoned")
        if self._on_finished:
            self._on_finished(self)


class ExamAttemptEngine:
    """Starts attempt sessions against the exam catalog."""

    def __init__(self, catalog, gateway, tick_interval: float = 0):
        self.catalog = catalog
        self.gateway = gateway
        self.tick_interval = tick_interval

    async def start_attempt(
        self,
        exam_set_id: str,
        student_id: Optional[str] = None,
        on_finished: Optional[Callable[[AttemptSession], None]] = None,
    ) -> AttemptSession:
        exam_set = await self.catalog.get_exam_set(exam_set_id)
        if not exam_set.isActive:
            raise InactiveExamError(f"Exam set '{exam_set.title}' is not open for attempts")
        if not exam_set.questions:
            raise EmptyExamError(f"Exam set '{exam_set.title}' has no questions yet")
        session = AttemptSession(exam_set, self.gateway, student_id=student_id, on_finished=on_finished)
        session.begin()
        session.start_timer(self.tick_interval)
        return session
