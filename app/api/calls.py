"""Voice call API endpoints."""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_user
from app.core.dependencies import get_call_session_manager
from app.db.database import get_db
from app.db.models import User
from app.services.call_session.controller import CallSessionController
from app.services.call_session.manager import CallSessionManager
from app.services.call_session.models import (
    CallMode,
    CallProfile,
    CallStatus,
    Notification,
    TranscriptMessage,
)
from app.services.persistence.interviews import (
    FeedbackPersistenceService,
    InterviewPersistenceService,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class StartCallRequest(BaseModel):
    """Start call request model."""
    mode: CallMode
    interview_id: Optional[str] = None


class CallSessionResponse(BaseModel):
    """Snapshot of a call session."""
    session_id: str
    mode: CallMode
    status: CallStatus
    is_speaking: bool
    last_utterance: str
    transcript: List[TranscriptMessage]
    notifications: List[Notification]
    redirect_to: Optional[str] = None
    web_call_url: Optional[str] = None  # room the browser joins to take part in the call

    @classmethod
    def from_controller(cls, controller: CallSessionController) -> "CallSessionResponse":
        state = controller.state
        return cls(
            session_id=controller.session_id,
            mode=state.mode,
            status=state.status,
            is_speaking=state.is_speaking,
            last_utterance=state.last_utterance,
            transcript=state.transcript,
            notifications=state.notifications,
            redirect_to=state.redirect_to,
            web_call_url=controller.voice.web_call_url,
        )


def _owned_session(
    manager: CallSessionManager, session_id: str, user: User
) -> CallSessionController:
    controller = manager.get_session(session_id)
    if controller is None or controller.profile is None or controller.profile.user_id != user.id:
        raise HTTPException(status_code=404, detail="Call session not found")
    return controller


@router.post("/api/calls", response_model=CallSessionResponse)
async def start_call(
    req: StartCallRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    manager: CallSessionManager = Depends(get_call_session_manager),
):
    """Start a voice call for the current user."""
    profile = CallProfile(user_name=user.name, user_id=user.id)

    if req.mode == CallMode.INTERVIEW:
        if not req.interview_id:
            raise HTTPException(status_code=422, detail="interview_id is required in interview mode")
        interview = await InterviewPersistenceService(db).get_interview_by_id(req.interview_id)
        if interview is None:
            raise HTTPException(status_code=404, detail="Interview not found")
        profile.interview_id = interview.id
        # Regenerating replaces the caller's own feedback for this interview
        existing = await FeedbackPersistenceService(db).get_feedback_by_interview_id(
            interview.id, user.id
        )
        profile.feedback_id = existing.id if existing else None
        profile.questions = list(interview.questions or [])

    logger.info(f"[CALLS] Start requested - user: {user.id}, mode: {req.mode.value}")
    controller = await manager.start_session(req.mode, profile)
    return CallSessionResponse.from_controller(controller)


@router.get("/api/calls/{session_id}", response_model=CallSessionResponse)
async def get_call(
    session_id: str,
    user: User = Depends(require_user),
    manager: CallSessionManager = Depends(get_call_session_manager),
):
    """Get the current state of a call; a finished call is released once its exit is read."""
    controller = _owned_session(manager, session_id, user)
    snapshot = CallSessionResponse.from_controller(controller)
    if snapshot.status == CallStatus.FINISHED and snapshot.redirect_to:
        await manager.end_session(session_id)
    return snapshot


@router.post("/api/calls/{session_id}/stop", response_model=CallSessionResponse)
async def stop_call(
    session_id: str,
    user: User = Depends(require_user),
    manager: CallSessionManager = Depends(get_call_session_manager),
):
    """End a call."""
    controller = _owned_session(manager, session_id, user)
    await manager.stop_session(session_id)
    return CallSessionResponse.from_controller(controller)
