# services/sessions.py
from typing import Dict, Optional
import logging

from services.attempt_engine import AttemptSession, AttemptState

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class AttemptRegistry:
    """In-progress attempt sessions of this process, keyed by attempt id."""

    def __init__(self):
        self._sessions: Dict[str, AttemptSession] = {}
        self._by_student: Dict[str, str] = {}

    def __len__(self):
        return len(self._sessions)

    def add(self, session: AttemptSession) -> None:
        previous = self.active_for(session.student_id) if session.student_id else None
        if previous is not None:
            if previous.state in (AttemptState.IN_PROGRESS, AttemptState.SUBMIT_FAILED):
                logger.info(
                    f"Student {session.student_id} started a new attempt, abandoning {previous.id} "
                    f"({previous.state.value})"
                )
                previous.abandon()
            # A write still in flight finishes on its own; it just is no longer tracked here.
            self.discard(previous)
        self._sessions[session.id] = session
        if session.student_id:
            self._by_student[session.student_id] = session.id

    def get(self, attempt_id: str) -> Optional[AttemptSession]:
        return self._sessions.get(attempt_id)

    def active_for(self, student_id: str) -> Optional[AttemptSession]:
        attempt_id = self._by_student.get(student_id)
        return self._sessions.get(attempt_id) if attempt_id else None

    def discard(self, session: AttemptSession) -> None:
        self._sessions.pop(session.id, None)
        if session.student_id and self._by_student.get(session.student_id) == session.id:
            del self._by_student[session.student_id]
