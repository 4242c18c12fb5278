# models/exam_set.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from models.question import Question

class ExamSet(BaseModel):
    id: str
    title: str
    description: str = ""
    createdBy: str
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)
    isActive: bool = True
    timeLimit: Optional[int] = Field(None, gt=0)  # minutes
    questions: List[Question] = []

    def ordered_questions(self) -> List[Question]:
        return sorted(self.questions, key=lambda q: q.order)

class ExamSetCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    isActive: bool = True
    timeLimit: Optional[int] = Field(None, gt=0)

class ExamSetUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    isActive: Optional[bool] = None
    timeLimit: Optional[int] = Field(None, gt=0)
