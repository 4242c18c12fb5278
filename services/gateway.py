# services/gateway.py
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from functools import wraps
from typing import List, Optional
import logging

from models.exam_attempt import ExamAttempt
from models.exam_set import ExamSet
from models.question import Question
from models.user import StoredUser
from services.errors import PersistenceError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}


def wrap_storage_errors(func):
    """Re-raise driver failures as PersistenceError."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"{func.__name__} failed: {e}")
            raise PersistenceError(f"Storage unavailable, please retry ({func.__name__})") from e
    return wrapper


class MongoGateway:
    """Persistence for users, exam sets, questions and attempts on a motor database."""

    def __init__(self, db):
        self.db = db

    async def _attach_questions(self, exam_sets: List[dict]) -> List[ExamSet]:
        ids = [e["id"] for e in exam_sets]
        questions = await self.db.questions.find(
            {"examSetId": {"$in": ids}}, NO_ID
        ).sort("order", 1).to_list(None)
        by_set = {}
        for q in questions:
            by_set.setdefault(q["examSetId"], []).append(Question(**q))
        return [ExamSet(**e, questions=by_set.get(e["id"], [])) for e in exam_sets]

    # Exam sets

    @wrap_storage_errors
    async def fetch_active_exam_sets(self) -> List[ExamSet]:
        return await self.fetch_exam_sets(include_inactive=False)

    @wrap_storage_errors
    async def fetch_exam_sets(self, include_inactive: bool = True) -> List[ExamSet]:
        query = {} if include_inactive else {"isActive": True}
        exam_sets = await self.db.exam_sets.find(query, NO_ID).sort("createdAt", -1).to_list(None)
        return await self._attach_questions(exam_sets)

    @wrap_storage_errors
    async def fetch_exam_set_by_id(self, exam_set_id: str) -> Optional[ExamSet]:
        exam_set = await self.db.exam_sets.find_one({"id": exam_set_id}, NO_ID)
        if not exam_set:
            return None
        return (await self._attach_questions([exam_set]))[0]

    @wrap_storage_errors
    async def create_exam_set(self, exam_set: ExamSet) -> ExamSet:
        await self.db.exam_sets.insert_one(exam_set.model_dump(exclude={"questions"}))
        return exam_set

    @wrap_storage_errors
    async def update_exam_set(self, exam_set_id: str, updates: dict) -> Optional[ExamSet]:
        updated = await self.db.exam_sets.find_one_and_update(
            {"id": exam_set_id},
            {"$set": updates},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            return None
        return (await self._attach_questions([updated]))[0]

    @wrap_storage_errors
    async def delete_exam_set(self, exam_set_id: str) -> bool:
        result = await self.db.exam_sets.delete_one({"id": exam_set_id})
        if result.deleted_count == 0:
            return False
        await self.db.questions.delete_many({"examSetId": exam_set_id})
        return True

    # Questions

    @wrap_storage_errors
    async def fetch_question_by_id(self, question_id: str) -> Optional[Question]:
        question = await self.db.questions.find_one({"id": question_id}, NO_ID)
        return Question(**question) if question else None

    @wrap_storage_errors
    async def insert_question(self, question: Question) -> Question:
        await self.db.questions.insert_one(question.model_dump())
        return question

    @wrap_storage_errors
    async def update_question(self, question_id: str, updates: dict) -> Optional[Question]:
        updated = await self.db.questions.find_one_and_update(
            {"id": question_id},
            {"$set": updates},
            projection=NO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return Question(**updated) if updated else None

    @wrap_storage_errors
    async def delete_question(self, question_id: str) -> bool:
        result = await self.db.questions.delete_one({"id": question_id})
        return result.deleted_count > 0

    # Attempts

    @wrap_storage_errors
    async def insert_attempt(self, attempt: ExamAttempt) -> str:
        try:
            await self.db.exam_attempts.insert_one(attempt.model_dump())
        except DuplicateKeyError:
            logger.warning(f"Attempt {attempt.id} already stored, keeping the existing record")
        return attempt.id

    @wrap_storage_errors
    async def fetch_attempt_by_id(self, attempt_id: str) -> Optional[ExamAttempt]:
        attempt = await self.db.exam_attempts.find_one({"id": attempt_id}, NO_ID)
        return ExamAttempt(**attempt) if attempt else None

    @wrap_storage_errors
    async def fetch_attempts(self, student_id: str = None, exam_set_id: str = None) -> List[ExamAttempt]:
        query = {"isCompleted": True}
        if student_id:
            query["studentId"] = student_id
        if exam_set_id:
            query["examSetId"] = exam_set_id
        attempts = await self.db.exam_attempts.find(query, NO_ID).sort("endTime", -1).to_list(None)
        return [ExamAttempt(**a) for a in attempts]

    # Users

    @wrap_storage_errors
    async def create_user(self, user: StoredUser) -> StoredUser:
        await self.db.users.insert_one(user.model_dump())
        return user

    @wrap_storage_errors
    async def fetch_user_by_id(self, user_id: str) -> Optional[StoredUser]:
        user = await self.db.users.find_one({"id": user_id}, NO_ID)
        return StoredUser(**user) if user else None

    @wrap_storage_errors
    async def fetch_user_by_username(self, username: str) -> Optional[StoredUser]:
        user = await self.db.users.find_one({"username": username}, NO_ID)
        return StoredUser(**user) if user else None

    @wrap_storage_errors
    async def user_exists(self, username: str, email: str) -> bool:
        found = await self.db.users.find_one({"$or": [{"username": username}, {"email": email}]})
        return found is not None

    @wrap_storage_errors
    async def touch_login(self, user_id: str, when) -> None:
        await self.db.users.update_one({"id": user_id}, {"$set": {"lastLogin": when}})
