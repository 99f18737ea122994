"""Call lifecycle state machine.

Every handler is a pure function ``(state, event) -> Transition``: it returns
the next state plus the side effects the controller must carry out, and never
touches the voice client or the network itself.

    INACTIVE   -> CONNECTING  start attempt passed its preconditions
    CONNECTING -> ACTIVE      call-start
    CONNECTING -> INACTIVE    start error (other than a remote teardown)
    ACTIVE     -> FINISHED    call-end, or "meeting has ended" error
    any        -> FINISHED    explicit stop

FINISHED is terminal. Entering it schedules the exit action exactly once.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from app.core.errors import AppError, ErrorKind, classify_error
from app.services.call_session.models import (
    CallMode,
    CallSessionState,
    CallStatus,
    Notification,
    TranscriptMessage,
)

logger = logging.getLogger(__name__)

HOME_PATH = "/"
TRANSCRIPT_ROLES = ("user", "system", "assistant")


def feedback_path(interview_id: str) -> str:
    return f"/interview/{interview_id}/feedback"


# ---- Events ----


@dataclass(frozen=True)
class StartRequested:
    assistant: Union[str, Dict[str, Any]]
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StartRejected:
    error: AppError


@dataclass(frozen=True)
class CallStarted:
    pass


@dataclass(frozen=True)
class CallEnded:
    pass


@dataclass(frozen=True)
class MessageReceived:
    message: Any


@dataclass(frozen=True)
class SpeechStarted:
    pass


@dataclass(frozen=True)
class SpeechEnded:
    pass


@dataclass(frozen=True)
class ErrorRaised:
    error: Any
    prefix: str = "VAPI error"


@dataclass(frozen=True)
class StopRequested:
    pass


@dataclass(frozen=True)
class FeedbackCompleted:
    success: bool
    feedback_id: Optional[str] = None


CallEvent = Union[
    StartRequested,
    StartRejected,
    CallStarted,
    CallEnded,
    MessageReceived,
    SpeechStarted,
    SpeechEnded,
    ErrorRaised,
    StopRequested,
    FeedbackCompleted,
]


# ---- Effects ----


@dataclass(frozen=True)
class StartVoice:
    assistant: Union[str, Dict[str, Any]]
    options: Dict[str, Any]


@dataclass(frozen=True)
class StopVoice:
    pass


@dataclass(frozen=True)
class Notify:
    message: str
    level: str = "error"


@dataclass(frozen=True)
class Navigate:
    path: str


@dataclass(frozen=True)
class SubmitFeedback:
    transcript: List[TranscriptMessage]


Effect = Union[StartVoice, StopVoice, Notify, Navigate, SubmitFeedback]


@dataclass
class Transition:
    state: CallSessionState
    effects: List[Effect] = field(default_factory=list)


def _notify(state: CallSessionState, message: str, level: str = "error") -> CallSessionState:
    notifications = state.notifications + [Notification(level=level, message=message)]
    return state.model_copy(update={"notifications": notifications})


def _finish(state: CallSessionState, effects: List[Effect]) -> Transition:
    """Move to FINISHED and schedule the exit action if it has not fired yet."""
    if state.status == CallStatus.FINISHED or state.exit_fired:
        return Transition(state.model_copy(update={"status": CallStatus.FINISHED}), effects)

    next_state = state.model_copy(
        update={"status": CallStatus.FINISHED, "exit_fired": True, "is_speaking": False}
    )
    if state.mode == CallMode.GENERATE:
        effects = effects + [Navigate(HOME_PATH)]
    else:
        effects = effects + [SubmitFeedback(list(state.transcript))]
    return Transition(next_state, effects)


def on_start_requested(state: CallSessionState, event: StartRequested) -> Transition:
    if state.status != CallStatus.INACTIVE:
        logger.warning(f"[CALL SESSION] Start ignored in status {state.status.value}")
        return Transition(state)
    next_state = state.model_copy(update={"status": CallStatus.CONNECTING})
    return Transition(next_state, [StartVoice(event.assistant, dict(event.options))])


def on_start_rejected(state: CallSessionState, event: StartRejected) -> Transition:
    next_state = _notify(state, event.error.message)
    if next_state.status == CallStatus.CONNECTING:
        next_state = next_state.model_copy(update={"status": CallStatus.INACTIVE})
    return Transition(next_state, [Notify(event.error.message)])


def on_call_started(state: CallSessionState, event: CallStarted) -> Transition:
    if state.status != CallStatus.CONNECTING:
        logger.warning(f"[CALL SESSION] call-start ignored in status {state.status.value}")
        return Transition(state)
    return Transition(state.model_copy(update={"status": CallStatus.ACTIVE}))


def on_call_ended(state: CallSessionState, event: CallEnded) -> Transition:
    if state.status == CallStatus.INACTIVE:
        logger.warning("[CALL SESSION] call-end received before any call was started")
        return Transition(state)
    return _finish(state, [])


def _field(message: Any, name: str) -> Any:
    if isinstance(message, dict):
        return message.get(name)
    return getattr(message, name, None)


def on_message(state: CallSessionState, event: MessageReceived) -> Transition:
    if state.status == CallStatus.FINISHED:
        return Transition(state)

    message = event.message
    if _field(message, "type") != "transcript" or _field(message, "transcriptType") != "final":
        return Transition(state)

    role = _field(message, "role")
    if role not in TRANSCRIPT_ROLES:
        logger.warning(f"[CALL SESSION] Dropping transcript with unknown role: {role!r}")
        return Transition(state)

    entry = TranscriptMessage(role=role, content=str(_field(message, "transcript") or ""))
    return Transition(state.model_copy(update={"transcript": state.transcript + [entry]}))


def on_speech_started(state: CallSessionState, event: SpeechStarted) -> Transition:
    if state.status == CallStatus.FINISHED:
        return Transition(state)
    return Transition(state.model_copy(update={"is_speaking": True}))


def on_speech_ended(state: CallSessionState, event: SpeechEnded) -> Transition:
    return Transition(state.model_copy(update={"is_speaking": False}))


def on_error(state: CallSessionState, event: ErrorRaised) -> Transition:
    error = classify_error(event.error)

    if error.kind == ErrorKind.REMOTE_TEARDOWN:
        logger.info(f"[CALL SESSION] Remote reported meeting ended: {error.message}")
        return _finish(state, [])

    if state.status == CallStatus.FINISHED:
        logger.info(f"[CALL SESSION] Error after call finished, ignoring: {error.message}")
        return Transition(state)

    logger.error(f"[CALL SESSION] {event.prefix}: {error.message} ({error.kind.value})")
    text = f"{event.prefix}: {error.message}"
    next_state = _notify(state, text)
    # Only a failed start resets to INACTIVE. Errors never reset an ACTIVE
    # call; it stays ACTIVE until call-end or stop.
    if next_state.status == CallStatus.CONNECTING:
        next_state = next_state.model_copy(update={"status": CallStatus.INACTIVE})
    return Transition(next_state, [Notify(text)])


def on_stop_requested(state: CallSessionState, event: StopRequested) -> Transition:
    return _finish(state, [StopVoice()])


def on_feedback_completed(state: CallSessionState, event: FeedbackCompleted) -> Transition:
    if state.redirect_to is not None:
        return Transition(state)
    if event.success and event.feedback_id and state.interview_id:
        path = feedback_path(state.interview_id)
    else:
        logger.warning("[CALL SESSION] Error saving feedback, sending user home")
        path = HOME_PATH
    return Transition(state, [Navigate(path)])


_HANDLERS = {
    StartRequested: on_start_requested,
    StartRejected: on_start_rejected,
    CallStarted: on_call_started,
    CallEnded: on_call_ended,
    MessageReceived: on_message,
    SpeechStarted: on_speech_started,
    SpeechEnded: on_speech_ended,
    ErrorRaised: on_error,
    StopRequested: on_stop_requested,
    FeedbackCompleted: on_feedback_completed,
}


def transition(state: CallSessionState, event: CallEvent) -> Transition:
    """Apply one event to the call state."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported call event: {type(event).__name__}")
    return handler(state, event)


def apply_navigation(state: CallSessionState, effect: Navigate) -> CallSessionState:
    """Record the exit destination; the first one wins."""
    if state.redirect_to is not None:
        return state
    return state.model_copy(update={"redirect_to": effect.path})
