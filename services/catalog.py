# services/catalog.py
from datetime import datetime
from pydantic import ValidationError
from typing import Dict, List
import logging
import uuid

from models.exam_set import ExamSet, ExamSetCreate, ExamSetUpdate
from models.exam_stats import DashboardOverview
from models.question import Question, QuestionCreate, QuestionUpdate
from services.errors import InvalidExamSetError, InvalidQuestionError, NotFoundError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ExamCatalogService:
    """Exam sets and their ordered questions.

    Listings and the admin overview are served from a process-local cache of
    exam sets by id. `refresh()` is the only full reload; mutations merge the
    record the store hands back. Starting an attempt always reads the store.
    """

    def __init__(self, gateway):
        self.gateway = gateway
        self._cache: Dict[str, ExamSet] = {}
        self._loaded = False

    def _remember(self, exam_set: ExamSet) -> ExamSet:
        exam_set = exam_set.model_copy(update={"questions": exam_set.ordered_questions()})
        self._cache[exam_set.id] = exam_set
        return exam_set

    def _merge_question(self, question: Question) -> None:
        exam_set = self._cache.get(question.examSetId)
        if exam_set is None:
            return
        questions = [q for q in exam_set.questions if q.id != question.id]
        questions.append(question)
        self._remember(exam_set.model_copy(update={"questions": questions}))

    def _forget_question(self, question: Question) -> None:
        exam_set = self._cache.get(question.examSetId)
        if exam_set is None:
            return
        questions = [q for q in exam_set.questions if q.id != question.id]
        self._remember(exam_set.model_copy(update={"questions": questions}))

    async def refresh(self) -> List[ExamSet]:
        exam_sets = await self.gateway.fetch_exam_sets(include_inactive=True)
        self._cache = {}
        self._loaded = True
        logger.info(f"Exam catalog loaded: {len(exam_sets)} exam sets")
        return [self._remember(e) for e in exam_sets]

    async def list_exam_sets(self, include_inactive: bool = False) -> List[ExamSet]:
        if not self._loaded:
            await self.refresh()
        exam_sets = sorted(self._cache.values(), key=lambda e: e.createdAt, reverse=True)
        return [e for e in exam_sets if include_inactive or e.isActive]

    async def get_exam_set(self, exam_set_id: str) -> ExamSet:
        """Read straight from the store; attempts start from this snapshot."""
        exam_set = await self.gateway.fetch_exam_set_by_id(exam_set_id)
        if exam_set is None:
            self._cache.pop(exam_set_id, None)
            raise NotFoundError(f"Exam set {exam_set_id} not found")
        return self._remember(exam_set)

    async def create_exam_set(self, data: ExamSetCreate, created_by: str) -> ExamSet:
        now = datetime.utcnow()
        exam_set = ExamSet(
            id=str(uuid.uuid4()),
            createdBy=created_by,
            createdAt=now,
            updatedAt=now,
            **data.model_dump(),
        )
        stored = await self.gateway.create_exam_set(exam_set)
        logger.info(f"Exam set created: {stored.id} by {created_by}")
        return self._remember(stored)

    async def update_exam_set(self, exam_set_id: str, data: ExamSetUpdate) -> ExamSet:
        existing = await self.get_exam_set(exam_set_id)
        updates = data.model_dump(exclude_unset=True)
        # Validate the merged record before anything is written.
        try:
            ExamSet(**{**existing.model_dump(), **updates})
        except ValidationError as e:
            raise InvalidExamSetError(str(e)) from e
        updates["updatedAt"] = datetime.utcnow()
        updated = await self.gateway.update_exam_set(exam_set_id, updates)
        if updated is None:
            raise NotFoundError(f"Exam set {exam_set_id} not found")
        logger.info(f"Exam set updated: {exam_set_id} fields={sorted(updates)}")
        return self._remember(updated)

    async def delete_exam_set(self, exam_set_id: str) -> None:
        if not await self.gateway.delete_exam_set(exam_set_id):
            raise NotFoundError(f"Exam set {exam_set_id} not found")
        self._cache.pop(exam_set_id, None)
        logger.info(f"Exam set deleted: {exam_set_id}")

    async def add_question(self, exam_set_id: str, data: QuestionCreate) -> Question:
        exam_set = await self.get_exam_set(exam_set_id)
        order = data.order
        if order is None:
            order = max((q.order for q in exam_set.questions), default=0) + 1
        now = datetime.utcnow()
        question = Question(
            id=str(uuid.uuid4()),
            examSetId=exam_set_id,
            questionText=data.questionText,
            imageUrl=data.imageUrl,
            options=data.options,
            correctAnswer=data.correctAnswer,
            order=order,
            createdAt=now,
            updatedAt=now,
        )
        stored = await self.gateway.insert_question(question)
        self._merge_question(stored)
        logger.info(f"Question {stored.id} added to exam set {exam_set_id} at order {order}")
        return stored

    async def update_question(self, question_id: str, data: QuestionUpdate) -> Question:
        existing = await self.gateway.fetch_question_by_id(question_id)
        if existing is None:
            raise NotFoundError(f"Question {question_id} not found")
        updates = data.model_dump(exclude_unset=True)
        # Validate the merged record before anything is written.
        try:
            Question(**{**existing.model_dump(), **updates})
        except ValidationError as e:
            raise InvalidQuestionError(str(e)) from e
        updates["updatedAt"] = datetime.utcnow()
        updated = await self.gateway.update_question(question_id, updates)
        if updated is None:
            raise NotFoundError(f"Question {question_id} not found")
        self._merge_question(updated)
        return updated

    async def delete_question(self, question_id: str) -> None:
        existing = await self.gateway.fetch_question_by_id(question_id)
        if existing is None or not await self.gateway.delete_question(question_id):
            raise NotFoundError(f"Question {question_id} not found")
        self._forget_question(existing)
        logger.info(f"Question {question_id} deleted from exam set {existing.examSetId}")

    async def overview(self) -> DashboardOverview:
        exam_sets = await self.list_exam_sets(include_inactive=True)
        attempts = await self.gateway.fetch_attempts()
        return DashboardOverview(
            totalExamSets=len(exam_sets),
            activeExamSets=sum(1 for e in exam_sets if e.isActive),
            totalQuestions=sum(len(e.questions) for e in exam_sets),
            totalAttempts=len(attempts),
        )
