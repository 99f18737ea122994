"""Call session models."""
from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel


class CallStatus(str, Enum):
    """Lifecycle of a single voice call."""

    INACTIVE = "inactive"
    CONNECTING = "connecting"
    ACTIVE = "active"
    FINISHED = "finished"

    def __str__(self) -> str:
        return self.value


class CallMode(str, Enum):
    """What the call is for."""

    GENERATE = "generate"  # Assistant collects details to generate an interview
    INTERVIEW = "interview"  # Assistant runs a prepared interview

    def __str__(self) -> str:
        return self.value


TranscriptRole = Literal["user", "system", "assistant"]


class TranscriptMessage(BaseModel):
    """One finalized spoken turn."""

    role: TranscriptRole
    content: str


class Notification(BaseModel):
    """User-visible notice raised by the call."""

    level: Literal["info", "error"] = "error"
    message: str


class CallProfile(BaseModel):
    """Who is calling and, in interview mode, what to ask."""

    user_name: str
    user_id: str
    interview_id: Optional[str] = None
    feedback_id: Optional[str] = None
    questions: List[str] = []


class CallSessionState(BaseModel):
    """State of one call, from start attempt to exit."""

    mode: CallMode
    interview_id: Optional[str] = None
    status: CallStatus = CallStatus.INACTIVE
    transcript: List[TranscriptMessage] = []
    is_speaking: bool = False
    notifications: List[Notification] = []
    redirect_to: Optional[str] = None
    exit_fired: bool = False

    @property
    def last_utterance(self) -> str:
        """Content of the most recent transcript entry."""
        if not self.transcript:
            return ""
        return self.transcript[-1].content
