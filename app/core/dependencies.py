"""FastAPI dependencies."""
from fastapi import Depends
from openai import AsyncOpenAI

from app.core.config import settings
from app.db.database import AsyncSessionLocal
from app.services.auth.tokens import SessionTokenAuthority, resolve_session_secret
from app.services.call_session.config import VoiceConfig
from app.services.call_session.manager import CallSessionManager
from app.services.feedback.models import FeedbackGenerator
from app.services.feedback.service import FeedbackService


def get_token_authority() -> SessionTokenAuthority:
    """Get session token authority instance."""
    return SessionTokenAuthority(resolve_session_secret(settings))


def get_feedback_service() -> FeedbackGenerator:
    """Get feedback generation service instance."""
    return FeedbackService(
        client=AsyncOpenAI(api_key=settings.openai_api_key),
        session_factory=AsyncSessionLocal,
        model=settings.feedback_model,
    )


def get_call_session_manager(
    feedback: FeedbackGenerator = Depends(get_feedback_service),
) -> CallSessionManager:
    """Get call session manager."""
    return CallSessionManager(VoiceConfig.from_settings(settings), feedback)
