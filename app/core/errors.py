"""Error kinds and message normalization shared by the call and auth layers."""
import json
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional

MEETING_ENDED_MARKER = "meeting has ended"


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    CONFIG_MISSING = "config_missing"
    PLACEHOLDER_CONFIG = "placeholder_config"
    TRANSPORT_ERROR = "transport_error"
    REMOTE_TEARDOWN = "remote_teardown"
    PERSISTENCE_ERROR = "persistence_error"
    INVALID_CREDENTIAL = "invalid_credential"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Application error tagged with an ErrorKind.

    The original message text is kept on ``message`` for logging, while
    ``kind`` drives how callers react to the failure.
    """

    def __init__(self, kind: ErrorKind, message: str, cause: Any = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    def __repr__(self) -> str:
        return f"AppError(kind={self.kind.value!r}, message={self.message!r})"


def _field(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def _nested_message(source: Any) -> Optional[str]:
    if source is None or isinstance(source, (str, bytes, int, float, bool)):
        return None
    for name in ("message", "error"):
        value = _field(source, name)
        if value:
            return str(value)
    return None


def extract_error_message(error: Any) -> str:
    """
    Pull a human-readable message out of an arbitrarily shaped error.

    Handles exceptions, dicts or objects carrying ``message``/``error``/
    ``data`` fields, HTTP-status shaped objects, and falls back to a
    best-effort string conversion. Never raises.
    """
    try:
        if isinstance(error, AppError):
            return error.message
        if isinstance(error, BaseException):
            return str(error) or type(error).__name__
        if error is None or isinstance(error, (str, int, float, bool)):
            return str(error)

        message = _field(error, "message")
        if isinstance(message, str) and message:
            return message

        nested_error = _field(error, "error")
        if isinstance(nested_error, str) and nested_error:
            return nested_error
        nested = _nested_message(nested_error)
        if nested:
            return nested

        nested = _nested_message(_field(error, "data"))
        if nested:
            return nested

        status = _field(error, "status")
        if isinstance(status, int) and not isinstance(status, bool):
            status_text = _field(error, "statusText") or _field(error, "status_text")
            return f"HTTP {status}{f' {status_text}' if status_text else ''}"

        fields = error if isinstance(error, Mapping) else getattr(error, "__dict__", None)
        if fields:
            return json.dumps(fields, default=str)
        return "Unknown error object"
    except Exception:
        try:
            return str(error)
        except Exception:
            return "Unknown error"


def is_meeting_ended_message(message: str) -> bool:
    """Whether the voice platform is reporting an already-closed meeting."""
    return MEETING_ENDED_MARKER in message.lower()


def classify_error(error: Any) -> AppError:
    """Normalize a voice-platform error into a tagged AppError."""
    if isinstance(error, AppError):
        return error
    message = extract_error_message(error)
    if is_meeting_ended_message(message):
        return AppError(ErrorKind.REMOTE_TEARDOWN, message, cause=error)
    return AppError(ErrorKind.TRANSPORT_ERROR, message, cause=error)
