"""Voice platform configuration for call sessions."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.core.config import Settings
from app.core.errors import AppError, ErrorKind
from app.services.call_session.models import CallMode

PLACEHOLDER_MARKERS = ("YOUR_", "YOUR-")

INTERVIEWER_ASSISTANT: Dict[str, Any] = {
    "name": "Interviewer",
    "firstMessage": (
        "Hello! Thank you for taking the time to speak with me today. "
        "I'm excited to learn more about you and your experience."
    ),
    "transcriber": {
        "provider": "deepgram",
        "model": "nova-2",
        "language": "en",
    },
    "voice": {
        "provider": "11labs",
        "voiceId": "sarah",
        "stability": 0.4,
        "similarityBoost": 0.8,
        "speed": 0.9,
        "style": 0.5,
        "useSpeakerBoost": True,
    },
    "model": {
        "provider": "openai",
        "model": "gpt-4",
        "messages": [
            {
                "role": "system",
                "content": (
                    "You are a professional job interviewer conducting a real-time voice "
                    "interview with a candidate. Your goal is to assess their "
                    "qualifications, motivation, and fit for the role.\n\n"
                    "Follow the structured question flow:\n{{questions}}\n\n"
                    "Listen actively, ask brief follow-up questions when a response is "
                    "vague, and keep the conversation flowing. Be professional, warm and "
                    "concise: this is a voice conversation, so keep replies short. "
                    "When the questions are done, thank the candidate and end the "
                    "conversation politely."
                ),
            }
        ],
    },
}


def is_placeholder(value: Optional[str]) -> bool:
    """Whether a configured value is missing or still a template placeholder."""
    return not value or any(marker in value for marker in PLACEHOLDER_MARKERS)


def format_questions(questions: List[str]) -> str:
    """Flatten interview questions into a bullet list."""
    return "\n".join(f"- {question}" for question in questions)


@dataclass(frozen=True)
class VoiceConfig:
    """Credentials and assistants a call session needs."""

    web_token: Optional[str]
    assistant_id: Optional[str] = None
    interviewer: Dict[str, Any] = field(default_factory=lambda: dict(INTERVIEWER_ASSISTANT))
    api_url: str = "https://api.vapi.ai"

    @classmethod
    def from_settings(cls, settings: Settings) -> "VoiceConfig":
        return cls(
            web_token=settings.vapi_web_token,
            assistant_id=settings.vapi_assistant_id,
            api_url=settings.vapi_api_url,
        )

    def check_ready(self, mode: CallMode) -> Optional[AppError]:
        """Return the configuration problem blocking a call in this mode, if any."""
        if not self.web_token:
            return AppError(
                ErrorKind.CONFIG_MISSING,
                "Missing VAPI_WEB_TOKEN in environment.",
            )
        if mode == CallMode.GENERATE and is_placeholder(self.assistant_id):
            return AppError(
                ErrorKind.PLACEHOLDER_CONFIG,
                "Set VAPI_ASSISTANT_ID in environment. Vapi web calls require an assistant id.",
            )
        return None
