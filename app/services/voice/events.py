"""Translation of Vapi server messages into voice client events."""
from typing import Any, Dict, List, Optional, Tuple

from app.services.voice.base import (
    CALL_END,
    CALL_START,
    ERROR,
    MESSAGE,
    SPEECH_END,
    SPEECH_START,
)

VoiceEvent = Tuple[str, Any]


def translate_server_message(message: Dict[str, Any]) -> List[VoiceEvent]:
    """
    Map one server message to the events a web client would have emitted.

    Message types with no client-side counterpart map to an empty list.
    """
    message_type = message.get("type")

    if message_type == "status-update":
        status = message.get("status")
        if status == "in-progress":
            return [(CALL_START, None)]
        if status == "ended":
            return [(CALL_END, None)]
        return []

    if message_type == "transcript":
        return [
            (
                MESSAGE,
                {
                    "type": "transcript",
                    "transcriptType": message.get("transcriptType"),
                    "role": message.get("role"),
                    "transcript": message.get("transcript", ""),
                },
            )
        ]

    if message_type == "speech-update":
        if message.get("role") != "assistant":
            return []
        if message.get("status") == "started":
            return [(SPEECH_START, None)]
        if message.get("status") == "stopped":
            return [(SPEECH_END, None)]
        return []

    if message_type == "end-of-call-report":
        return [(CALL_END, None)]

    if message_type in ("error", "hang"):
        return [(ERROR, message.get("error") or message)]

    return []


def extract_session_id(message: Dict[str, Any]) -> Optional[str]:
    """Find the session id stamped into the call's metadata at start time."""
    call = message.get("call") or {}
    candidates = (
        (call.get("assistantOverrides") or {}).get("metadata"),
        call.get("metadata"),
        (message.get("assistant") or {}).get("metadata"),
    )
    for metadata in candidates:
        if isinstance(metadata, dict) and metadata.get("sessionId"):
            return str(metadata["sessionId"])
    return None


def extract_call_id(message: Dict[str, Any]) -> Optional[str]:
    call = message.get("call") or {}
    call_id = call.get("id")
    return str(call_id) if call_id else None
