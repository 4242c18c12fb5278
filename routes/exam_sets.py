# routes/exam_sets.py
from fastapi import APIRouter, Depends
from typing import List
import logging

from dependencies import get_catalog
from models.exam_set import ExamSet, ExamSetCreate, ExamSetUpdate
from models.question import PublicQuestion, Question, QuestionCreate, QuestionUpdate
from models.user import Role, User
from services.errors import NotFoundError
from .auth import get_current_user, require_role

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["exam-sets"])

admin_only = require_role(Role.ADMIN)

def exam_set_for(exam_set: ExamSet, user: User) -> dict:
    """Exam set as the given user may see it; students never get the answer key."""
    if user.role is Role.ADMIN:
        return exam_set.model_dump()
    elif user.role is Role.STUDENT:
        data = exam_set.model_dump(exclude={"questions"})
        data["questions"] = [PublicQuestion.from_question(q).model_dump() for q in exam_set.questions]
        return data
    raise ValueError(f"Unhandled role {user.role}")

@router.get("/exam-sets/")
async def get_exam_sets(current_user: User = Depends(get_current_user), catalog=Depends(get_catalog)):
    exam_sets = await catalog.list_exam_sets()
    return [exam_set_for(e, current_user) for e in exam_sets]

@router.get("/exam-sets/all", response_model=List[ExamSet])
async def get_all_exam_sets(current_user: User = Depends(admin_only), catalog=Depends(get_catalog)):
    return await catalog.list_exam_sets(include_inactive=True)

@router.get("/exam-sets/{id}")
async def get_exam_set(id: str, current_user: User = Depends(get_current_user), catalog=Depends(get_catalog)):
    exam_set = await catalog.get_exam_set(id)
    if current_user.role is Role.STUDENT and not exam_set.isActive:
        raise NotFoundError(f"Exam set {id} not found")
    return exam_set_for(exam_set, current_user)

@router.post("/exam-sets/", response_model=ExamSet)
async def create_exam_set(exam_set: ExamSetCreate, current_user: User = Depends(admin_only), catalog=Depends(get_catalog)):
    return await catalog.create_exam_set(exam_set, created_by=current_user.id)

@router.put("/exam-sets/{id}", response_model=ExamSet)
async def update_exam_set(id: str, updates: ExamSetUpdate, current_user: User = Depends(admin_only), catalog=Depends(get_catalog)):
    return await catalog.update_exam_set(id, updates)

@router.delete("/exam-sets/{id}")
async def delete_exam_set(id: str, current_user: User = Depends(admin_only), catalog=Depends(get_catalog)):
    await catalog.delete_exam_set(id)
    return {"message": "Exam set deleted successfully"}

@router.post("/exam-sets/{id}/questions", response_model=Question)
async def add_question(id: str, question: QuestionCreate, current_user: User = Depends(admin_only), catalog=Depends(get_catalog)):
    return await catalog.add_question(id, question)

@router.put("/questions/{id}", response_model=Question)
async def update_question(id: str, updates: QuestionUpdate, current_user: User = Depends(admin_only), catalog=Depends(get_catalog)):
    return await catalog.update_question(id, updates)

@router.delete("/questions/{id}")
async def delete_question(id: str, current_user: User = Depends(admin_only), catalog=Depends(get_catalog)):
    await catalog.delete_question(id)
    return {"message": "Question deleted successfully"}
