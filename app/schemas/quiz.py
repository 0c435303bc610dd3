"""
Pydantic schemas for quiz attempt requests and responses
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.schemas.achievement import AchievementResponse


class AnswerSubmission(BaseModel):
    """One selected option"""
    question_id: str = Field(..., min_length=1, description="Question ID")
    selected_option_id: str = Field(..., min_length=1, description="Selected option ID")


class QuizSubmission(BaseModel):
    """Schema for quiz submission"""
    answers: List[AnswerSubmission]
    time_spent: int = Field(..., ge=0, description="Time spent in seconds")


class AnswerResult(BaseModel):
    """Per-question outcome revealed after submission"""
    question_id: str
    selected_option_id: str
    is_correct: bool
    explanation: Optional[str] = None

    class Config:
        from_attributes = True


class QuizSubmissionResponse(BaseModel):
    """Response after a scored submission"""
    score: int
    correct_answers: int
    total_questions: int
    time_spent: int
    detailed_results: List[AnswerResult]
    new_achievements: List[AchievementResponse] = []


class CooldownStatusResponse(BaseModel):
    """Whether the user may attempt the quiz now"""
    can_attempt: bool
    next_attempt_at: Optional[datetime] = None


class QuizResultResponse(BaseModel):
    """Most recent stored attempt for a quiz"""
    score: int
    correct_answers: int
    total_questions: int
    time_spent: int
    completed_at: datetime
    next_attempt_allowed: datetime
    detailed_results: List[AnswerResult]
