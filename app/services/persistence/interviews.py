"""Interview and feedback persistence services."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from app.db.models import Feedback, Interview


class InterviewPersistenceService:
    """Service for reading and creating interviews."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_interview(
        self,
        user_id: str,
        role: str,
        questions: List[str],
        level: Optional[str] = None,
        type: Optional[str] = None,
        techstack: Optional[List[str]] = None,
        finalized: bool = True,
    ) -> Interview:
        """Create a new interview."""
        interview = Interview(
            user_id=user_id,
            role=role,
            level=level,
            type=type,
            techstack=techstack or [],
            questions=questions,
            finalized=finalized,
        )
        self.db.add(interview)
        await self.db.commit()
        await self.db.refresh(interview)
        return interview

    async def get_interview_by_id(self, interview_id: str) -> Optional[Interview]:
        """Get interview by ID."""
        return await self.db.get(Interview, interview_id)

    async def get_latest_interviews(self, user_id: str, limit: int = 20) -> List[Interview]:
        """Get the newest finalized interviews created by other users."""
        result = await self.db.execute(
            select(Interview)
            .where(Interview.finalized.is_(True), Interview.user_id != user_id)
            .order_by(desc(Interview.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_interviews_by_user_id(self, user_id: str) -> List[Interview]:
        """Get a user's own interviews, newest first."""
        result = await self.db.execute(
            select(Interview)
            .where(Interview.user_id == user_id)
            .order_by(desc(Interview.created_at))
        )
        return list(result.scalars().all())


class FeedbackPersistenceService:
    """Service for persisting interview feedback."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save_feedback(
        self, fields: Dict[str, Any], feedback_id: Optional[str] = None
    ) -> Feedback:
        """
        Store feedback.

        With ``feedback_id`` the record is replaced in place (or created under
        that id if missing), so resubmitting the same id keeps a single
        record. Without it a new record is inserted.

        Raises:
            PermissionError: if the existing record belongs to another user
                or interview
        """
        feedback = await self.get_feedback_by_id(feedback_id) if feedback_id else None
        if feedback is not None and (
            feedback.user_id != fields.get("user_id")
            or feedback.interview_id != fields.get("interview_id")
        ):
            raise PermissionError(
                f"Feedback {feedback_id} belongs to another user or interview"
            )
        if feedback is None:
            feedback = Feedback(**fields)
            if feedback_id:
                feedback.id = feedback_id
            self.db.add(feedback)
        else:
            for key, value in fields.items():
                setattr(feedback, key, value)
            feedback.created_at = datetime.utcnow()

        await self.db.commit()
        await self.db.refresh(feedback)
        return feedback

    async def get_feedback_by_id(self, feedback_id: str) -> Optional[Feedback]:
        """Get feedback by ID."""
        return await self.db.get(Feedback, feedback_id)

    async def get_feedback_by_interview_id(
        self, interview_id: str, user_id: str
    ) -> Optional[Feedback]:
        """Get a user's feedback for an interview."""
        result = await self.db.execute(
            select(Feedback)
            .where(Feedback.interview_id == interview_id, Feedback.user_id == user_id)
            .order_by(desc(Feedback.created_at))
            .limit(1)
        )
        return result.scalar_one_or_none()
