# routes/stats.py
from fastapi import APIRouter, Depends

from dependencies import get_catalog, get_gateway
from models.exam_stats import DashboardOverview, ExamStats, StudentSummary
from models.user import Role, User
from services.stats import compute_stats, summarize_student
from .auth import get_current_user, require_role

router = APIRouter(prefix="/api/stats", tags=["stats"])

@router.get("/exam-sets/{exam_set_id}", response_model=ExamStats)
async def get_exam_set_stats(exam_set_id: str, current_user: User = Depends(get_current_user), gateway=Depends(get_gateway)):
    attempts = await gateway.fetch_attempts(exam_set_id=exam_set_id)
    return compute_stats(attempts, exam_set_id)

@router.get("/me", response_model=StudentSummary)
async def get_my_summary(current_user: User = Depends(require_role(Role.STUDENT)), gateway=Depends(get_gateway)):
    attempts = await gateway.fetch_attempts(student_id=current_user.id)
    return summarize_student(attempts)

@router.get("/overview", response_model=DashboardOverview)
async def get_overview(current_user: User = Depends(require_role(Role.ADMIN)), catalog=Depends(get_catalog)):
    return await catalog.overview()
