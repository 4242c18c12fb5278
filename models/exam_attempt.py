# models/exam_attempt.py
from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import List, Optional

# Recorded for every question the student left blank; never a valid option index.
UNANSWERED = -1

class AttemptAnswer(BaseModel):
    questionId: str
    selectedAnswer: int = UNANSWERED

class ExamAttempt(BaseModel):
    id: str
    studentId: Optional[str] = None
    examSetId: str
    answers: List[AttemptAnswer] = []
    score: int = Field(0, ge=0)
    totalQuestions: int = Field(..., ge=0)
    startTime: datetime = Field(default_factory=datetime.utcnow)
    endTime: Optional[datetime] = None
    isCompleted: bool = False

    @model_validator(mode="after")
    def validate_bounds(self) -> "ExamAttempt":
        if self.score > self.totalQuestions:
            raise ValueError("score cannot exceed totalQuestions")
        if self.isCompleted and (self.endTime is None or self.endTime < self.startTime):
            raise ValueError("a completed attempt needs an endTime not before its startTime")
        return self

class AnswerRequest(BaseModel):
    questionId: str
    selectedAnswer: int

class NavigateRequest(BaseModel):
    action: str = Field(..., pattern="^(next|previous|goto)$")
    index: Optional[int] = None

class StartAttemptRequest(BaseModel):
    examSetId: str
