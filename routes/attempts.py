# routes/attempts.py
from fastapi import APIRouter, HTTPException, Depends
from typing import List, Optional
import logging

from dependencies import get_engine, get_gateway, get_registry
from models.exam_attempt import AnswerRequest, ExamAttempt, NavigateRequest, StartAttemptRequest
from models.question import PublicQuestion
from models.user import Role, User
from services.attempt_engine import AttemptSession, AttemptState
from services.errors import NotFoundError
from .auth import get_current_user, require_role

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/attempts", tags=["attempts"])

student_only = require_role(Role.STUDENT)

def session_view(session: AttemptSession) -> dict:
    finished = session.state in (AttemptState.SUBMIT_FAILED, AttemptState.COMPLETED)
    return {
        "id": session.id,
        "examSetId": session.exam_set_id,
        "examTitle": session.exam_title,
        "state": session.state.value,
        "startTime": session.attempt.startTime,
        "currentIndex": session.current_index,
        "questionCount": session.question_count,
        "currentQuestion": PublicQuestion.from_question(session.current_question).model_dump(),
        "questions": [PublicQuestion.from_question(q).model_dump() for q in session.questions],
        "answers": session.recorded_answers(),
        "answeredCount": session.answered_count,
        "timeLimitSeconds": session.time_limit_seconds,
        "timeRemaining": session.time_remaining,
        "score": session.computed_score if finished else None,
        "lastError": str(session.last_error) if session.last_error else None,
    }

def owned_session(attempt_id: str, current_user: User, registry) -> Optional[AttemptSession]:
    session = registry.get(attempt_id)
    if session is not None and session.student_id != current_user.id:
        raise HTTPException(403, "This attempt belongs to another student")
    return session

async def stored_attempt(attempt_id: str, current_user: User, gateway) -> ExamAttempt:
    attempt = await gateway.fetch_attempt_by_id(attempt_id)
    if attempt is None or attempt.studentId != current_user.id:
        raise NotFoundError(f"Attempt {attempt_id} not found, start the exam again from the catalog")
    return attempt

def live_session(attempt_id: str, current_user: User, registry) -> AttemptSession:
    session = owned_session(attempt_id, current_user, registry)
    if session is None:
        raise NotFoundError(f"No exam in progress with id {attempt_id}, start the exam again from the catalog")
    return session

@router.post("/")
async def start_attempt(
    request: StartAttemptRequest,
    current_user: User = Depends(student_only),
    engine=Depends(get_engine),
    registry=Depends(get_registry),
):
    session = await engine.start_attempt(request.examSetId, student_id=current_user.id, on_finished=registry.discard)
    registry.add(session)
    return session_view(session)

@router.get("/", response_model=List[ExamAttempt])
async def get_attempts(
    student_id: str = None,
    exam_set_id: str = None,
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_gateway),
):
    if current_user.role is Role.ADMIN:
        return await gateway.fetch_attempts(student_id=student_id, exam_set_id=exam_set_id)
    elif current_user.role is Role.STUDENT:
        if student_id and student_id != current_user.id:
            raise HTTPException(403, "Unauthorized access")
        return await gateway.fetch_attempts(student_id=current_user.id, exam_set_id=exam_set_id)
    raise ValueError(f"Unhandled role {current_user.role}")

@router.get("/{attempt_id}/session")
async def get_session(
    attempt_id: str,
    current_user: User = Depends(student_only),
    registry=Depends(get_registry),
    gateway=Depends(get_gateway),
):
    session = owned_session(attempt_id, current_user, registry)
    if session is None:
        attempt = await stored_attempt(attempt_id, current_user, gateway)
        return {"id": attempt.id, "state": AttemptState.COMPLETED.value, "attempt": attempt.model_dump()}
    return session_view(session)

@router.put("/{attempt_id}/answers")
async def record_answer(
    attempt_id: str,
    answer: AnswerRequest,
    current_user: User = Depends(student_only),
    registry=Depends(get_registry),
):
    session = live_session(attempt_id, current_user, registry)
    session.record_answer(answer.questionId, answer.selectedAnswer)
    return {"answers": session.recorded_answers(), "answeredCount": session.answered_count}

@router.post("/{attempt_id}/navigate")
async def navigate(
    attempt_id: str,
    request: NavigateRequest,
    current_user: User = Depends(student_only),
    registry=Depends(get_registry),
):
    session = live_session(attempt_id, current_user, registry)
    if request.action == "next":
        session.next()
    elif request.action == "previous":
        session.previous()
    else:
        if request.index is None:
            raise HTTPException(422, "index is required for goto")
        session.go_to(request.index)
    return {
        "currentIndex": session.current_index,
        "currentQuestion": PublicQuestion.from_question(session.current_question).model_dump(),
    }

@router.get("/{attempt_id}/time")
async def get_time_remaining(
    attempt_id: str,
    current_user: User = Depends(student_only),
    registry=Depends(get_registry),
):
    session = live_session(attempt_id, current_user, registry)
    return {
        "state": session.state.value,
        "timeLimitSeconds": session.time_limit_seconds,
        "timeRemaining": session.time_remaining,
    }

@router.post("/{attempt_id}/submit", response_model=ExamAttempt)
async def submit_attempt(
    attempt_id: str,
    current_user: User = Depends(student_only),
    registry=Depends(get_registry),
    gateway=Depends(get_gateway),
):
    session = owned_session(attempt_id, current_user, registry)
    if session is None:
        # Already written, e.g. by the countdown or an earlier request.
        return await stored_attempt(attempt_id, current_user, gateway)
    return await session.submit()

@router.delete("/{attempt_id}")
async def abandon_attempt(
    attempt_id: str,
    current_user: User = Depends(student_only),
    registry=Depends(get_registry),
):
    session = live_session(attempt_id, current_user, registry)
    session.abandon()
    return {"message": "Attempt abandoned"}
