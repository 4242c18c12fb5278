# models/question.py
from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import List, Optional

MIN_OPTIONS = 2
MAX_OPTIONS = 6

def check_answer_key(options: List[str], correct_answer: int) -> None:
    if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        raise ValueError(f"A question needs between {MIN_OPTIONS} and {MAX_OPTIONS} options")
    if not 0 <= correct_answer < len(options):
        raise ValueError("correctAnswer must be the index of one of the options")

class Question(BaseModel):
    id: str
    examSetId: str
    questionText: str
    imageUrl: Optional[str] = None
    options: List[str]
    correctAnswer: int
    order: int = Field(..., ge=1)
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def validate_answer_key(self) -> "Question":
        check_answer_key(self.options, self.correctAnswer)
        return self

class QuestionCreate(BaseModel):
    questionText: str = Field(..., min_length=1)
    imageUrl: Optional[str] = None
    options: List[str]
    correctAnswer: int
    order: Optional[int] = Field(None, ge=1)  # appended after the last question when omitted

    @model_validator(mode="after")
    def validate_answer_key(self) -> "QuestionCreate":
        check_answer_key(self.options, self.correctAnswer)
        return self

class QuestionUpdate(BaseModel):
    questionText: Optional[str] = Field(None, min_length=1)
    imageUrl: Optional[str] = None
    options: Optional[List[str]] = None
    correctAnswer: Optional[int] = None
    order: Optional[int] = Field(None, ge=1)

class PublicQuestion(BaseModel):
    """Question as shown to a student while an attempt is running."""
    id: str
    questionText: str
    imageUrl: Optional[str] = None
    options: List[str]
    order: int

    @classmethod
    def from_question(cls, question: Question) -> "PublicQuestion":
        return cls(
            id=question.id,
            questionText=question.questionText,
            imageUrl=question.imageUrl,
            options=question.options,
            order=question.order,
        )
