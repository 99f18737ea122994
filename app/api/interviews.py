"""Interview and feedback API endpoints."""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_user
from app.db.database import get_db
from app.db.models import Feedback, Interview, User
from app.services.persistence.interviews import (
    FeedbackPersistenceService,
    InterviewPersistenceService,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class InterviewCreate(BaseModel):
    """Interview creation request."""
    role: str = Field(min_length=1)
    level: Optional[str] = None
    type: Optional[str] = None
    techstack: List[str] = []
    questions: List[str] = Field(min_length=1)


class InterviewResponse(BaseModel):
    """Interview response model."""
    id: str
    user_id: str
    role: str
    level: Optional[str] = None
    type: Optional[str] = None
    techstack: List[str] = []
    questions: List[str] = []
    finalized: bool
    created_at: str

    @classmethod
    def from_record(cls, interview: Interview) -> "InterviewResponse":
        return cls(
            id=interview.id,
            user_id=interview.user_id,
            role=interview.role,
            level=interview.level,
            type=interview.type,
            techstack=interview.techstack or [],
            questions=interview.questions or [],
            finalized=interview.finalized,
            created_at=interview.created_at.isoformat() if interview.created_at else "",
        )


class CategoryScoreResponse(BaseModel):
    name: str
    score: int
    comment: str


class FeedbackResponse(BaseModel):
    """Feedback response model."""
    id: str
    interview_id: str
    user_id: str
    total_score: int
    category_scores: List[CategoryScoreResponse]
    strengths: List[str]
    areas_for_improvement: List[str]
    final_assessment: str
    created_at: str

    @classmethod
    def from_record(cls, feedback: Feedback) -> "FeedbackResponse":
        return cls(
            id=feedback.id,
            interview_id=feedback.interview_id,
            user_id=feedback.user_id,
            total_score=feedback.total_score,
            category_scores=feedback.category_scores or [],
            strengths=feedback.strengths or [],
            areas_for_improvement=feedback.areas_for_improvement or [],
            final_assessment=feedback.final_assessment,
            created_at=feedback.created_at.isoformat() if feedback.created_at else "",
        )


@router.post("/api/interviews", response_model=InterviewResponse)
async def create_interview(
    req: InterviewCreate,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Create an interview owned by the current user."""
    interview = await InterviewPersistenceService(db).create_interview(
        user_id=user.id,
        role=req.role,
        level=req.level,
        type=req.type,
        techstack=req.techstack,
        questions=req.questions,
    )
    logger.info(f"[INTERVIEWS] Interview created - id: {interview.id}, user: {user.id}")
    return InterviewResponse.from_record(interview)


@router.get("/api/interviews/latest", response_model=List[InterviewResponse])
async def get_latest_interviews(
    limit: int = 20,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the newest finalized interviews from other users."""
    interviews = await InterviewPersistenceService(db).get_latest_interviews(user.id, limit=limit)
    return [InterviewResponse.from_record(interview) for interview in interviews]


@router.get("/api/interviews/mine", response_model=List[InterviewResponse])
async def get_my_interviews(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the current user's interviews."""
    interviews = await InterviewPersistenceService(db).get_interviews_by_user_id(user.id)
    return [InterviewResponse.from_record(interview) for interview in interviews]


@router.get("/api/interviews/{interview_id}", response_model=InterviewResponse)
async def get_interview(
    interview_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Get an interview by id."""
    interview = await InterviewPersistenceService(db).get_interview_by_id(interview_id)
    if interview is None:
        raise HTTPException(status_code=404, detail="Interview not found")
    return InterviewResponse.from_record(interview)


@router.get("/api/interviews/{interview_id}/feedback", response_model=FeedbackResponse)
async def get_interview_feedback(
    interview_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the current user's feedback for an interview."""
    feedback = await FeedbackPersistenceService(db).get_feedback_by_interview_id(
        interview_id, user.id
    )
    if feedback is None:
        raise HTTPException(status_code=404, detail="Feedback not found")
    return FeedbackResponse.from_record(feedback)
