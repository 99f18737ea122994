"""Call session manager."""
import logging
import time
import uuid
from typing import Callable, Dict, List, Optional

from app.core.errors import extract_error_message
from app.services.call_session.config import VoiceConfig
from app.services.call_session.controller import CallSessionController
from app.services.call_session.models import CallMode, CallProfile, CallStatus
from app.services.feedback.models import FeedbackGenerator
from app.services.voice.base import VoiceClient
from app.services.voice.events import (
    extract_call_id,
    extract_session_id,
    translate_server_message,
)
from app.services.voice.vapi import VapiWebClient

logger = logging.getLogger(__name__)

# Module-level session storage (persists across requests)
# In production, use Redis or similar
_sessions: Dict[str, CallSessionController] = {}
_call_index: Dict[str, str] = {}  # platform call id -> session id
_created_at: Dict[str, float] = {}  # session id -> clock reading at creation

# Longer than any interview; older sessions are treated as abandoned
SESSION_MAX_AGE_SECONDS = 2 * 60 * 60

VoiceClientFactory = Callable[[str], VoiceClient]


class CallSessionManager:
    """Creates call sessions and routes platform events to them."""

    def __init__(
        self,
        config: VoiceConfig,
        feedback: FeedbackGenerator,
        voice_factory: Optional[VoiceClientFactory] = None,
        max_session_age: float = SESSION_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.feedback = feedback
        self.voice_factory = voice_factory or self._vapi_client
        self.max_session_age = max_session_age
        self.clock = clock

    def _vapi_client(self, session_id: str) -> VoiceClient:
        return VapiWebClient(
            web_token=self.config.web_token or "",
            api_url=self.config.api_url,
            session_id=session_id,
        )

    async def start_session(self, mode: CallMode, profile: CallProfile) -> CallSessionController:
        """
        Create a session, register it and start its call.

        A session whose call never got past INACTIVE is released before
        returning; the returned controller still carries its notifications.
        """
        await self.release_stale_sessions()

        session_id = uuid.uuid4().hex
        controller = CallSessionController(
            voice=self.voice_factory(session_id),
            config=self.config,
            feedback=self.feedback,
            session_id=session_id,
        )
        _sessions[session_id] = controller
        _created_at[session_id] = self.clock()
        logger.info(
            f"[SESSION MANAGER] Session created - session: {session_id}, mode: {mode.value}, "
            f"user: {profile.user_id}"
        )

        await controller.start_call(mode, profile)

        if controller.status == CallStatus.INACTIVE:
            logger.info(f"[SESSION MANAGER] Call did not start, releasing session: {session_id}")
            await self.end_session(session_id)
            return controller

        call_id = controller.voice.call_id
        if call_id:
            _call_index[call_id] = session_id
        return controller

    def get_session(self, session_id: str) -> Optional[CallSessionController]:
        """Get an existing call session."""
        return _sessions.get(session_id)

    async def stop_session(self, session_id: str) -> Optional[CallSessionController]:
        """Stop the call of an existing session."""
        controller = self.get_session(session_id)
        if controller is None:
            return None
        await controller.stop_call()
        return controller

    async def route_server_message(self, message: Dict) -> bool:
        """
        Replay one platform webhook message into its session.

        Returns:
            True if the message reached a session, False if it was dropped
        """
        session_id = extract_session_id(message)
        if session_id is None:
            call_id = extract_call_id(message)
            session_id = _call_index.get(call_id) if call_id else None

        controller = self.get_session(session_id) if session_id else None
        if controller is None:
            logger.warning(
                f"[SESSION MANAGER] No session for message type '{message.get('type')}' "
                f"- session: {session_id}"
            )
            return False

        for event, payload in translate_server_message(message):
            await controller.handle_event(event, payload)
        return True

    async def release_stale_sessions(self) -> List[str]:
        """
        End sessions older than ``max_session_age``.

        Calls still connecting or active are hung up on the platform first.
        No exit action runs for them.

        Returns:
            Released session ids
        """
        now = self.clock()
        stale = [
            session_id
            for session_id, created in list(_created_at.items())
            if now - created > self.max_session_age
        ]
        for session_id in stale:
            controller = _sessions.get(session_id)
            if controller is not None and controller.status in (
                CallStatus.CONNECTING,
                CallStatus.ACTIVE,
            ):
                try:
                    await controller.voice.stop()
                except Exception as e:
                    logger.warning(
                        f"[SESSION MANAGER] Error hanging up stale call - session: {session_id}, "
                        f"Error: {type(e).__name__}: {extract_error_message(e)}"
                    )
            logger.info(f"[SESSION MANAGER] Releasing stale session: {session_id}")
            await self.end_session(session_id)
        return stale

    async def end_session(self, session_id: str) -> None:
        """Forget a session and close its voice client."""
        _created_at.pop(session_id, None)
        controller = _sessions.pop(session_id, None)
        if controller is None:
            return
        if controller.status in (CallStatus.CONNECTING, CallStatus.ACTIVE):
            logger.warning(
                f"[SESSION MANAGER] Ending session that is still {controller.status.value} "
                f"- session: {session_id}"
            )
        controller.detach()
        for call_id, indexed in list(_call_index.items()):
            if indexed == session_id:
                del _call_index[call_id]
        await controller.voice.aclose()
