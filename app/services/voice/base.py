"""Voice client interface."""
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

CALL_START = "call-start"
CALL_END = "call-end"
MESSAGE = "message"
SPEECH_START = "speech-start"
SPEECH_END = "speech-end"
ERROR = "error"

VOICE_EVENTS = (CALL_START, CALL_END, MESSAGE, SPEECH_START, SPEECH_END, ERROR)

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


class VoiceClient(ABC):
    """Real-time voice platform client.

    Emits ``call-start``, ``call-end``, ``message``, ``speech-start``,
    ``speech-end`` and ``error`` to registered listeners.
    """

    def __init__(self):
        self._listeners: Dict[str, List[EventHandler]] = {}
        # Set by start() once the platform has created the call
        self.call_id: Optional[str] = None
        self.web_call_url: Optional[str] = None

    def on(self, event: str, handler: EventHandler) -> None:
        """Register a listener for an event."""
        if event not in VOICE_EVENTS:
            raise ValueError(f"Unknown voice event: {event}")
        self._listeners.setdefault(event, []).append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove a previously registered listener."""
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: str, payload: Any = None) -> None:
        """Deliver an event to its listeners, one at a time, in order."""
        handlers = list(self._listeners.get(event, []))
        if not handlers:
            logger.debug(f"[VOICE] No listeners for event '{event}'")
        for handler in handlers:
            result = handler(payload)
            if inspect.isawaitable(result):
                await result

    @abstractmethod
    async def start(
        self, assistant: Union[str, Dict[str, Any]], options: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Open a call with an assistant id or an inline assistant config."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Close the current call."""
        pass

    async def aclose(self) -> None:
        """Release client resources. Nothing to release by default."""
        pass
