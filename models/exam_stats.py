# models/exam_stats.py
from pydantic import BaseModel
from typing import Dict, List
from models.exam_attempt import ExamAttempt

class ExamStats(BaseModel):
    totalAttempts: int = 0
    averageScore: float = 0.0
    highestScore: float = 0.0
    lowestScore: float = 0.0
    passRate: float = 0.0

class StudentSummary(BaseModel):
    totalAttempts: int = 0
    averageScore: float = 0.0
    bestScore: float = 0.0
    attemptsByExamSet: Dict[str, List[ExamAttempt]] = {}

class DashboardOverview(BaseModel):
    totalExamSets: int = 0
    activeExamSets: int = 0
    totalQuestions: int = 0
    totalAttempts: int = 0
