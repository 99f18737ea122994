"""Feedback models."""
from abc import ABC, abstractmethod
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from app.services.call_session.models import TranscriptMessage

CategoryName = Literal[
    "Communication Skills",
    "Technical Knowledge",
    "Problem-Solving",
    "Cultural & Role Fit",
    "Confidence & Clarity",
]

CATEGORY_NAMES: List[str] = [
    "Communication Skills",
    "Technical Knowledge",
    "Problem-Solving",
    "Cultural & Role Fit",
    "Confidence & Clarity",
]


class CategoryScore(BaseModel):
    """Score for one rubric category."""

    name: CategoryName
    score: int = Field(ge=0, le=100)
    comment: str


class FeedbackAssessment(BaseModel):
    """Structured evaluation returned by the language model."""

    totalScore: int = Field(ge=0, le=100)
    categoryScores: List[CategoryScore] = Field(min_length=5, max_length=5)
    strengths: List[str]
    areasForImprovement: List[str]
    finalAssessment: str


class CreateFeedbackParams(BaseModel):
    """Input to feedback generation."""

    interview_id: str
    user_id: str
    transcript: List[TranscriptMessage]
    feedback_id: Optional[str] = None


class FeedbackResult(BaseModel):
    """Outcome of feedback generation."""

    success: bool
    feedback_id: Optional[str] = None


class FeedbackGenerator(ABC):
    """Turns an interview transcript into stored feedback."""

    @abstractmethod
    async def create_feedback(self, params: CreateFeedbackParams) -> FeedbackResult:
        """Generate and persist feedback; never raises."""
        pass
