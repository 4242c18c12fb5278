import asyncio
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from dependencies import get_catalog, get_engine, get_gateway, get_registry
from main import app
from models.exam_attempt import AttemptAnswer, ExamAttempt
from models.exam_set import ExamSet
from models.question import Question
from services.attempt_engine import ExamAttemptEngine
from services.catalog import ExamCatalogService
from services.errors import PersistenceError
from services.sessions import AttemptRegistry


class InMemoryGateway:
    """Gateway double keeping every collection in dictionaries."""

    def __init__(self):
        self.users = {}
        self.exam_sets = {}
        self.questions = {}
        self.attempts = {}
        self.insert_attempt_calls = 0
        self.fail_next_inserts = 0

    def add_exam_set(self, exam_set: ExamSet) -> ExamSet:
        self.exam_sets[exam_set.id] = exam_set.model_copy(update={"questions": []}, deep=True)
        for question in exam_set.questions:
            self.questions[question.id] = question.model_copy(deep=True)
        return exam_set

    def _with_questions(self, exam_set: ExamSet) -> ExamSet:
        questions = sorted(
            (q.model_copy(deep=True) for q in self.questions.values() if q.examSetId == exam_set.id),
            key=lambda q: q.order,
        )
        return exam_set.model_copy(update={"questions": questions}, deep=True)

    async def fetch_active_exam_sets(self):
        return await self.fetch_exam_sets(include_inactive=False)

    async def fetch_exam_sets(self, include_inactive=True):
        return [
            self._with_questions(e)
            for e in self.exam_sets.values()
            if include_inactive or e.isActive
        ]

    async def fetch_exam_set_by_id(self, exam_set_id):
        exam_set = self.exam_sets.get(exam_set_id)
        return self._with_questions(exam_set) if exam_set else None

    async def create_exam_set(self, exam_set):
        return self.add_exam_set(exam_set)

    async def update_exam_set(self, exam_set_id, updates):
        if exam_set_id not in self.exam_sets:
            return None
        # Validate like a real round trip through the store would.
        self.exam_sets[exam_set_id] = ExamSet.model_validate({**self.exam_sets[exam_set_id].model_dump(), **updates})
        return self._with_questions(self.exam_sets[exam_set_id])

    async def delete_exam_set(self, exam_set_id):
        if self.exam_sets.pop(exam_set_id, None) is None:
            return False
        self.questions = {k: q for k, q in self.questions.items() if q.examSetId != exam_set_id}
        return True

    async def fetch_question_by_id(self, question_id):
        question = self.questions.get(question_id)
        return question.model_copy(deep=True) if question else None

    async def insert_question(self, question):
        self.questions[question.id] = question.model_copy(deep=True)
        return question

    async def update_question(self, question_id, updates):
        if question_id not in self.questions:
            return None
        self.questions[question_id] = Question.model_validate({**self.questions[question_id].model_dump(), **updates})
        return self.questions[question_id].model_copy(deep=True)

    async def delete_question(self, question_id):
        return self.questions.pop(question_id, None) is not None

    async def insert_attempt(self, attempt):
        self.insert_attempt_calls += 1
        # Give concurrent callers a chance to run while the write is pending.
        await asyncio.sleep(0)
        if self.fail_next_inserts:
            self.fail_next_inserts -= 1
            raise PersistenceError("Storage unavailable, please retry (insert_attempt)")
        self.attempts.setdefault(attempt.id, attempt.model_copy(deep=True))
        return attempt.id

    async def fetch_attempt_by_id(self, attempt_id):
        return self.attempts.get(attempt_id)

    async def fetch_attempts(self, student_id=None, exam_set_id=None):
        found = [
            a for a in self.attempts.values()
            if a.isCompleted
            and (not student_id or a.studentId == student_id)
            and (not exam_set_id or a.examSetId == exam_set_id)
        ]
        return sorted(found, key=lambda a: a.endTime, reverse=True)

    async def create_user(self, user):
        self.users[user.id] = user
        return user

    async def fetch_user_by_id(self, user_id):
        return self.users.get(user_id)

    async def fetch_user_by_username(self, username):
        return next((u for u in self.users.values() if u.username == username), None)

    async def user_exists(self, username, email):
        return any(u.username == username or u.email == email for u in self.users.values())

    async def touch_login(self, user_id, when):
        self.users[user_id] = self.users[user_id].model_copy(update={"lastLogin": when})


def make_question(exam_set_id, order, correct_answer, options=None, question_id=None):
    return Question(
        id=question_id or f"{exam_set_id}-q{order}",
        examSetId=exam_set_id,
        questionText=f"Question {order}",
        options=options or ["A", "B", "C", "D"],
        correctAnswer=correct_answer,
        order=order,
    )


def make_exam_set(exam_set_id="exam-1", correct_answers=(1, 1), time_limit=None, is_active=True):
    return ExamSet(
        id=exam_set_id,
        title=f"Exam {exam_set_id}",
        createdBy="admin-1",
        isActive=is_active,
        timeLimit=time_limit,
        questions=[make_question(exam_set_id, i + 1, c) for i, c in enumerate(correct_answers)],
    )


def make_attempt(exam_set_id, score, total, student_id="student-1", minutes_ago=0):
    end = datetime.utcnow() - timedelta(minutes=minutes_ago)
    return ExamAttempt(
        id=f"{exam_set_id}-{student_id}-{score}-{total}-{minutes_ago}",
        studentId=student_id,
        examSetId=exam_set_id,
        answers=[AttemptAnswer(questionId=f"q{i}") for i in range(total)],
        score=score,
        totalQuestions=total,
        startTime=end - timedelta(minutes=10),
        endTime=end,
        isCompleted=True,
    )


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def catalog(gateway):
    return ExamCatalogService(gateway)


@pytest.fixture
def engine(catalog, gateway):
    return ExamAttemptEngine(catalog, gateway, tick_interval=0)


@pytest.fixture
def registry():
    return AttemptRegistry()


@pytest.fixture
def client(gateway, catalog, engine, registry):
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, username, role):
    resp = client.post("/api/auth/register/", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": "password",
        "name": username.title(),
        "role": role,
    })
    assert resp.status_code == 200, resp.text
    data = resp.json()
    return {"Authorization": f"Bearer {data['access_token']}"}, data["user"]


@pytest.fixture
def admin(client):
    return register(client, "admin", "admin")


@pytest.fixture
def student(client):
    return register(client, "student", "student")
