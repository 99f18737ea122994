"""Call session controller."""
import logging
from typing import Any, Dict, List, Optional, Union

from app.core.errors import extract_error_message
from app.services.call_session.config import VoiceConfig, format_questions
from app.services.call_session.models import (
    CallMode,
    CallProfile,
    CallSessionState,
    CallStatus,
)
from app.services.call_session.transitions import (
    CallEnded,
    CallEvent,
    CallStarted,
    Effect,
    ErrorRaised,
    FeedbackCompleted,
    MessageReceived,
    Navigate,
    Notify,
    SpeechEnded,
    SpeechStarted,
    StartRejected,
    StartRequested,
    StartVoice,
    StopRequested,
    StopVoice,
    SubmitFeedback,
    apply_navigation,
    transition,
)
from app.services.feedback.models import (
    CreateFeedbackParams,
    FeedbackGenerator,
    FeedbackResult,
)
from app.services.voice.base import (
    CALL_END,
    CALL_START,
    ERROR,
    MESSAGE,
    SPEECH_END,
    SPEECH_START,
    VoiceClient,
)

logger = logging.getLogger(__name__)


class CallSessionController:
    """Drives one voice interview call and its exit action.

    Voice client events and user actions arrive on the same event loop, so
    handlers never interleave except across the two awaited calls:
    ``voice.start`` and ``feedback.create_feedback``.
    """

    def __init__(
        self,
        voice: VoiceClient,
        config: VoiceConfig,
        feedback: FeedbackGenerator,
        session_id: Optional[str] = None,
    ):
        self.voice = voice
        self.config = config
        self.feedback = feedback
        self.session_id = session_id
        self.profile: Optional[CallProfile] = None
        self.state: Optional[CallSessionState] = None
        self._listeners = {
            CALL_START: lambda payload: self.dispatch(CallStarted()),
            CALL_END: lambda payload: self.dispatch(CallEnded()),
            MESSAGE: lambda payload: self.dispatch(MessageReceived(payload)),
            SPEECH_START: lambda payload: self.dispatch(SpeechStarted()),
            SPEECH_END: lambda payload: self.dispatch(SpeechEnded()),
            ERROR: lambda payload: self.dispatch(ErrorRaised(payload)),
        }
        self._attached = False

    @property
    def status(self) -> CallStatus:
        return self.state.status if self.state else CallStatus.INACTIVE

    def attach(self) -> None:
        """Subscribe to the voice client's events."""
        if self._attached:
            return
        for event, handler in self._listeners.items():
            self.voice.on(event, handler)
        self._attached = True

    def detach(self) -> None:
        """Unsubscribe from the voice client's events."""
        if not self._attached:
            return
        for event, handler in self._listeners.items():
            self.voice.off(event, handler)
        self._attached = False

    def _start_params(self, mode: CallMode, profile: CallProfile) -> tuple:
        if mode == CallMode.GENERATE:
            return self.config.assistant_id, {
                "variableValues": {
                    "username": profile.user_name,
                    "userid": profile.user_id,
                }
            }
        return self.config.interviewer, {
            "variableValues": {"questions": format_questions(profile.questions)}
        }

    async def start_call(self, mode: CallMode, profile: CallProfile) -> CallSessionState:
        """
        Start the call.

        Configuration problems are reported as notifications and leave the
        session INACTIVE. A start failure reported by the voice platform is
        classified like any other voice error.
        """
        if self.state is None or self.state.status == CallStatus.INACTIVE:
            self.state = CallSessionState(
                mode=mode,
                interview_id=profile.interview_id,
                notifications=self.state.notifications if self.state else [],
            )
            self.profile = profile
        else:
            logger.warning(
                f"[CALL SESSION] start_call ignored - session: {self.session_id}, "
                f"status: {self.state.status.value}"
            )
            return self.state

        self.attach()

        problem = self.config.check_ready(mode)
        if problem is not None:
            logger.error(
                f"[CALL SESSION] Cannot start call - session: {self.session_id}, "
                f"{problem.kind.value}: {problem.message}"
            )
            return await self.dispatch(StartRejected(problem))

        assistant, options = self._start_params(mode, profile)
        logger.info(
            f"[CALL SESSION] Starting {mode.value} call - session: {self.session_id}, "
            f"user: {profile.user_id}"
        )
        return await self.dispatch(StartRequested(assistant, options))

    async def stop_call(self) -> CallSessionState:
        """End the call. Safe to call more than once."""
        if self.state is None:
            raise RuntimeError("stop_call() before start_call()")
        logger.info(f"[CALL SESSION] Stop requested - session: {self.session_id}")
        return await self.dispatch(StopRequested())

    async def handle_event(self, event: str, payload: Any = None) -> None:
        """Feed a raw voice event through the client's listeners."""
        await self.voice.emit(event, payload)

    async def dispatch(self, event: CallEvent) -> CallSessionState:
        """Apply an event and carry out the resulting effects in order."""
        if self.state is None:
            raise RuntimeError(f"{type(event).__name__} dispatched before start_call()")

        old_status = self.state.status
        result = transition(self.state, event)
        self.state = result.state
        if old_status != self.state.status:
            logger.info(
                f"[CALL SESSION] Status changed: {old_status.value} -> {self.state.status.value} "
                f"- session: {self.session_id}"
            )

        for effect in result.effects:
            await self._run_effect(effect)
        return self.state

    async def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, StartVoice):
            await self._start_voice(effect.assistant, effect.options)
        elif isinstance(effect, StopVoice):
            await self._stop_voice()
        elif isinstance(effect, Notify):
            logger.info(f"[CALL SESSION] Notify ({effect.level}): {effect.message}")
        elif isinstance(effect, Navigate):
            self.state = apply_navigation(self.state, effect)
            logger.info(
                f"[CALL SESSION] Exit to {self.state.redirect_to} - session: {self.session_id}"
            )
        elif isinstance(effect, SubmitFeedback):
            await self._submit_feedback(effect.transcript)

    async def _start_voice(
        self, assistant: Union[str, Dict[str, Any]], options: Dict[str, Any]
    ) -> None:
        try:
            await self.voice.start(assistant, options)
        except Exception as e:
            logger.error(
                f"[CALL SESSION] Error starting call - session: {self.session_id}, "
                f"Error: {type(e).__name__}: {extract_error_message(e)}",
                exc_info=True,
            )
            await self.dispatch(ErrorRaised(e, prefix="Unable to start call"))

    async def _stop_voice(self) -> None:
        try:
            await self.voice.stop()
        except Exception as e:
            # The local session is already FINISHED.
            logger.warning(
                f"[CALL SESSION] Error stopping call - session: {self.session_id}, "
                f"Error: {type(e).__name__}: {extract_error_message(e)}"
            )

    async def _submit_feedback(self, transcript: List) -> None:
        profile = self.profile
        if profile is None or not profile.interview_id:
            logger.warning(
                f"[CALL SESSION] Interview call without interview id - session: {self.session_id}"
            )
            await self.dispatch(FeedbackCompleted(success=False))
            return

        logger.info(
            f"[CALL SESSION] Generating feedback - session: {self.session_id}, "
            f"interview: {profile.interview_id}, turns: {len(transcript)}"
        )
        try:
            result = await self.feedback.create_feedback(
                CreateFeedbackParams(
                    interview_id=profile.interview_id,
                    user_id=profile.user_id,
                    transcript=transcript,
                    feedback_id=profile.feedback_id,
                )
            )
        except Exception as e:
            logger.error(
                f"[CALL SESSION] Feedback generation raised - session: {self.session_id}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            result = FeedbackResult(success=False)
        await self.dispatch(
            FeedbackCompleted(success=result.success, feedback_id=result.feedback_id)
        )
